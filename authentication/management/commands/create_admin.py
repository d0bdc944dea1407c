from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from authentication.services import AuthService


class Command(BaseCommand):
    help = "Create a verified admin account."

    def add_arguments(self, parser):
        parser.add_argument("--name", required=True)
        parser.add_argument("--email", required=True)
        parser.add_argument("--password", required=True)

    def handle(self, *args, **options):
        try:
            user = AuthService().create_admin(options["name"], options["email"], options["password"])
        except ValidationError as exc:
            raise CommandError("; ".join(exc.messages)) from exc
        self.stdout.write(self.style.SUCCESS(f"Admin {user['email']} created ({user['_id']})"))
