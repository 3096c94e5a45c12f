"""Tests for the badge catalogue CLI."""
import json

import pytest

from pingponghub.import_badges import main


def test_dry_run_reports_default_catalogue(capsys):
    assert main(['--env', 'testing', '--dry-run']) == 0
    result = json.loads(capsys.readouterr().out)
    assert result['dry_run'] is True
    assert result['created'] == 15
    assert result['updated'] == 0


def test_import_from_file(tmp_path, capsys):
    payload = {'badges': [
        {'code': 'social_butterfly', 'name': 'Social Butterfly', 'category': 'SOCIAL'},
        {'code': 'MATCH_5', 'name': 'Warming Up', 'xp_reward': 75},
    ]}
    path = tmp_path / 'badges.json'
    path.write_text(json.dumps(payload), encoding='utf-8')

    assert main(['--env', 'testing', '--file', str(path)]) == 0
    assert json.loads(capsys.readouterr().out) == {'created': 2, 'updated': 0}


def test_import_rejects_definitions_without_code(tmp_path):
    path = tmp_path / 'badges.json'
    path.write_text(json.dumps([{'name': 'Nameless'}]), encoding='utf-8')
    with pytest.raises(SystemExit, match='missing a code'):
        main(['--env', 'testing', '--file', str(path)])


def test_import_rejects_unknown_category(tmp_path):
    path = tmp_path / 'badges.json'
    path.write_text(json.dumps([{'code': 'ODD_ONE', 'category': 'cosmetic'}]), encoding='utf-8')
    with pytest.raises(SystemExit, match='Unknown badge category'):
        main(['--env', 'testing', '--file', str(path)])
