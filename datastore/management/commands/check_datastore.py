from django.core.management.base import BaseCommand, CommandError

from datastore.connection import get_default_context


class Command(BaseCommand):
    help = "Ping the configured MongoDB deployment and report whether it is reachable."

    def handle(self, *args, **options):
        result = get_default_context().health()
        if result["status"] != "healthy":
            raise CommandError(f"Datastore unhealthy: {result['message']}")
        self.stdout.write(self.style.SUCCESS(result["message"]))
