"""CLI utility to seed/upsert the badge catalogue."""

import argparse
import json

from pingponghub.app import create_app, db
from pingponghub.models import Badge
from pingponghub.services.badges import DEFAULT_BADGES, seed_badges


def _load_definitions(path):
    with open(path, encoding='utf-8') as handle:
        payload = json.load(handle)
    if isinstance(payload, dict):
        payload = payload.get('badges', [])
    if not isinstance(payload, list):
        raise SystemExit('Badge file must contain a list or a {"badges": [...]} object.')
    return payload


def _build_parser():
    parser = argparse.ArgumentParser(
        description='Upsert badge definitions by code (defaults to the built-in catalogue).',
    )
    parser.add_argument(
        '--file',
        help='Path to a JSON file with badge definitions. If omitted, the built-in catalogue is used.',
    )
    parser.add_argument(
        '--env',
        default='development',
        choices=['development', 'testing', 'production'],
        help='App config environment to use (default: development).',
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Validate and preview results without committing database changes.',
    )
    parser.add_argument(
        '--list',
        action='store_true',
        help='List badges currently stored in the database.',
    )
    return parser


def main(argv=None):
    args = _build_parser().parse_args(argv)
    app = create_app(args.env)

    with app.app_context():
        if args.list:
            badges = [badge.to_dict() for badge in Badge.query.order_by(Badge.code.asc()).all()]
            print(json.dumps({'badges': badges}, indent=2))
            return 0

        definitions = _load_definitions(args.file) if args.file else DEFAULT_BADGES
        try:
            result = seed_badges(definitions, commit=not args.dry_run)
        except ValueError as exc:
            db.session.rollback()
            raise SystemExit(str(exc)) from None

        if args.dry_run:
            db.session.rollback()
            result['dry_run'] = True
        print(json.dumps(result, indent=2))
        return 0


if __name__ == '__main__':
    raise SystemExit(main())
