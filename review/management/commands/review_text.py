"""
Django management command to review a text from the command line.

Echoes the model's annotated HTML to stderr as it arrives. Once the review
completed cleanly the sanitized result goes to stdout, or to --output.
"""

import sys
from pathlib import Path

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from review.services import config as config_service
from review.services.ai import ReviewRequest
from review.services.consumer import ReviewClient, run_review


class Command(BaseCommand):
    help = 'Review a text file (or stdin) and print the annotated HTML'

    def add_arguments(self, parser):
        parser.add_argument(
            'path',
            nargs='?',
            default='-',
            help="File to review, or '-' for stdin (default)",
        )
        parser.add_argument(
            '--model',
            help='Model identifier (default: REVIEW_DEFAULT_MODEL)',
        )
        parser.add_argument(
            '--api-key',
            help='API key to use; defaults to the saved key, then OPENAI_API_KEY',
        )
        parser.add_argument(
            '--save-key',
            action='store_true',
            help='Remember --api-key for later runs',
        )
        parser.add_argument(
            '--forget-key',
            action='store_true',
            help='Delete the saved API key and exit',
        )
        parser.add_argument(
            '--url',
            help='Base URL of a running Redline server; reviews in-process when omitted',
        )
        parser.add_argument(
            '--output',
            help='Write the sanitized HTML to this file once the review completes',
        )
        parser.add_argument(
            '--quiet',
            action='store_true',
            help='Do not echo fragments to stderr while streaming',
        )

    def _read_input(self, path):
        if path == '-':
            return sys.stdin.read()
        try:
            return Path(path).read_text(encoding='utf-8')
        except OSError as e:
            raise CommandError(f"Cannot read {path}: {e}")

    def _resolve_credential(self, options):
        if options.get('save_key'):
            if not options.get('api_key'):
                raise CommandError('--save-key needs --api-key')
            path = config_service.save_credential(options['api_key'])
            self.stderr.write(self.style.SUCCESS(f"API key saved to {path}"))
        return options.get('api_key') or config_service.load_saved_credential()

    def handle(self, *args, **options):
        """Execute the command."""
        if options.get('forget_key'):
            if config_service.forget_credential():
                self.stdout.write(self.style.SUCCESS('Saved API key removed'))
            else:
                self.stdout.write('No saved API key')
            return

        text = self._read_input(options['path'])
        credential = self._resolve_credential(options)

        try:
            request = ReviewRequest(
                input_text=text,
                model_id=options.get('model') or config_service.get_default_model(),
                credential=credential,
            )
        except ValidationError as e:
            raise CommandError(e.messages[0])

        # Raw fragments are progress only; stdout gets the sanitized result
        def echo(fragment):
            self.stderr.write(fragment, style_func=str, ending='')
            self.stderr.flush()

        on_fragment = None if options['quiet'] else echo

        try:
            if options.get('url'):
                result = ReviewClient(options['url']).review(request, on_fragment=on_fragment)
            else:
                result = run_review(request, on_fragment=on_fragment)
        except ValidationError as e:
            raise CommandError(e.messages[0])

        if not options['quiet']:
            self.stderr.write('')

        if not result.completed:
            raise CommandError(result.error or 'Review failed')

        if options.get('output'):
            Path(options['output']).write_text(result.sanitized_html, encoding='utf-8')
            self.stdout.write(
                self.style.SUCCESS(f"Review saved to {options['output']}")
            )
        else:
            self.stdout.write(result.sanitized_html)
            if not options['quiet']:
                self.stderr.write(
                    self.style.SUCCESS(f"Review completed ({result.fragments} fragments)")
                )
