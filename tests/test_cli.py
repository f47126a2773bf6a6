import pytest

from partstock import cli
from partstock.core.security import decode_token


def test_issue_token_prints_a_valid_token(capsys):
    assert cli.main(['issue-token', 'Jane Mechanic', '--hours', '2']) == 0
    token = capsys.readouterr().out.strip()
    assert decode_token(token)['sub'] == 'Jane Mechanic'


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 1
    assert 'usage: partstock' in capsys.readouterr().out


def test_maintenance_rejects_unknown_type():
    with pytest.raises(SystemExit):
        cli.main(['maintenance', '--type', 'vacuum'])


def test_sample_parts_have_unique_skus():
    skus = [part['item_id'] for part in cli.SAMPLE_PARTS]
    assert len(skus) == len(set(skus)) == 8
    low = [part['item_id'] for part in cli.SAMPLE_PARTS if part['stock'] <= part['reorder_level']]
    assert low == ['OIL-FLT-5W30', 'SPARK-PLG-NGK']
