from __future__ import annotations

from django.core.management.base import BaseCommand

from apps.matching.services.lifecycle import get_match_lifecycle


class Command(BaseCommand):
    help = "End matches whose final unlike request went unanswered past its deadline."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--limit", type=int, default=None, help="Process at most this many matches.")
        parser.add_argument("--dry-run", action="store_true", help="List overdue pairs without ending them.")

    def handle(self, *args, **options):
        lifecycle = get_match_lifecycle()
        limit = options.get("limit")

        if options.get("dry_run"):
            pairs = lifecycle.overdue_pairs(limit=limit)
            for user_a_id, user_b_id in pairs:
                self.stdout.write(f"overdue: {user_a_id}:{user_b_id}")
            self.stdout.write(self.style.WARNING(f"Dry run. Overdue matches: {len(pairs)}."))
            return

        results = lifecycle.sweep_overdue(limit=limit)
        self.stdout.write(self.style.SUCCESS(f"Ended {len(results)} overdue matches."))
