import json

import pytest


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def issue(runner, *extra):
    result = runner.invoke(args=[
        'giftcards', 'issue',
        '--sender-email', 'a@x.com',
        '--amount', '50',
        '--currency', 'INR',
        '--symbol', '₹',
        *extra,
    ])
    assert result.exit_code == 0, result.output
    first_line = result.output.splitlines()[0]
    assert first_line.startswith('PASS Issued gift card ')
    return first_line.rsplit(' ', 1)[1]


def card_json(output):
    return json.loads(output[output.index('{'):])


def test_issue_and_show(runner):
    code = issue(runner, '--denom-type', 'multi')

    result = runner.invoke(args=['giftcards', 'show', code.lower()])

    assert result.exit_code == 0
    card = card_json(result.output)
    assert card['code'] == code
    assert card['status'] == 'active'
    assert card['balance'] == 50


def test_issue_rejects_invalid_amount(runner):
    result = runner.invoke(args=[
        'giftcards', 'issue', '--sender-email', 'a@x.com', '--amount', '0', '--currency', 'INR',
    ])

    assert result.exit_code == 1
    assert 'FAIL VALIDATION_ERROR' in result.output


def test_redeem_once(runner):
    code = issue(runner)
    args = ['giftcards', 'redeem', code, '--method', 'upi', '--email', 'payee@x.com',
            '--detail', 'upiId=payee@bank']

    first = runner.invoke(args=args)
    second = runner.invoke(args=args)

    assert first.exit_code == 0
    card = card_json(first.output)
    assert card['status'] == 'redeemed'
    assert card['redemptionDetails']['upiId'] == 'payee@bank'
    assert second.exit_code == 1
    assert 'FAIL ALREADY_REDEEMED' in second.output


def test_redeem_rejects_malformed_detail(runner):
    code = issue(runner)

    result = runner.invoke(args=['giftcards', 'redeem', code, '--method', 'upi',
                                 '--email', 'payee@x.com', '--detail', 'oops'])

    assert result.exit_code == 2
    assert 'key=value' in result.output


def test_expire(runner):
    code = issue(runner)

    expired = runner.invoke(args=['giftcards', 'expire', code])
    again = runner.invoke(args=['giftcards', 'expire', code])

    assert expired.exit_code == 0
    assert 'PASS Expired' in expired.output
    assert again.exit_code == 1
    assert 'FAIL NOT_ACTIVE' in again.output


def test_show_unknown(runner):
    result = runner.invoke(args=['giftcards', 'show', 'LIKE-ZZZZ-ZZZZ-ZZZZ'])

    assert result.exit_code == 1
    assert 'FAIL NOT_FOUND' in result.output


def test_init_db(runner):
    result = runner.invoke(args=['system', 'init-db'])
    assert 'PASS' in result.output
