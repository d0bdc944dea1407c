"""
The ``datastore`` app is the document-store access layer.

Contents
--------
- connection
    Connection Manager: one cached MongoDB client per process, created
    lazily, scheme-validated and ping-checked.
- access
    Document Access Layer: DocumentStore, with find/insert/update/delete/count
    methods, timestamp discipline and update normalisation. get_store()
    returns one bound to the default connection.
- patch
    Explicit update builder and the normaliser for raw update mappings.
- errors
    ConfigurationError, DatabaseConnectionError and DataAccessError with a
    closed ErrorKind classification of driver failures.
"""
