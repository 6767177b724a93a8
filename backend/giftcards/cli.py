# Overview: Flask CLI command groups for bootstrap and gift card operations.

# backend/giftcards/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create missing tables (idempotent). Prefer "flask db upgrade" in production.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Gift card operations:
# - python -m flask giftcards issue --sender-email a@x.com --amount 50 --currency INR --symbol "₹"
#   Issue a gift card without a payment (support/goodwill cards).
# - python -m flask giftcards show LIKE-ABCD-EFGH-JKLM
#   Print a card.
# - python -m flask giftcards redeem LIKE-ABCD-EFGH-JKLM --method upi --email payee@x.com --detail upiId=payee@bank
#   Redeem a card on behalf of a customer.
# - python -m flask giftcards expire LIKE-ABCD-EFGH-JKLM
#   Expire an active card.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .services.giftcard_service import get_giftcard_service


def _fail(result):
    click.echo(f"FAIL {result.error}: {result.message}")
    raise click.exceptions.Exit(1)


def _print_card(card):
    click.echo(json.dumps(card.to_dict(), indent=2, ensure_ascii=False))


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('giftcards')
def giftcards_group():
    """Gift card issuance and lifecycle commands."""


@giftcards_group.command('issue')
@click.option('--sender-email', required=True, help='Sender e-mail address')
@click.option('--amount', required=True, help='Card value, e.g. 50 or 49.99')
@click.option('--currency', required=True, help='Currency code, e.g. INR')
@click.option('--symbol', 'currency_symbol', help='Currency symbol, e.g. ₹')
@click.option('--recipient', help='Recipient display name')
@click.option('--recipient-email', help='Recipient e-mail address')
@click.option('--message', help='Personal message')
@click.option('--denom-type', type=click.Choice(['fixed', 'multi']), default='fixed', show_default=True)
@with_appcontext
def issue_giftcard(sender_email, amount, currency, currency_symbol, recipient,
                   recipient_email, message, denom_type):
    """Issue a gift card without a payment."""
    result = get_giftcard_service().create({
        "senderEmail": sender_email,
        "amount": amount,
        "currency": currency,
        "currencySymbol": currency_symbol,
        "recipient": recipient,
        "recipientEmail": recipient_email,
        "message": message,
        "denomType": denom_type,
    })
    if not result.ok:
        _fail(result)
    click.echo(f"PASS Issued gift card {result.card.code}")
    _print_card(result.card)


@giftcards_group.command('show')
@click.argument('code')
@with_appcontext
def show_giftcard(code):
    """Print a gift card."""
    result = get_giftcard_service().find_by_code(code)
    if not result.ok:
        _fail(result)
    _print_card(result.card)


@giftcards_group.command('redeem')
@click.argument('code')
@click.option('--method', 'withdrawal_method', required=True, help='Withdrawal method, e.g. upi or bank')
@click.option('--email', required=True, help='Payee e-mail address')
@click.option('--detail', 'details', multiple=True, help='Extra payout field as key=value (repeatable)')
@with_appcontext
def redeem_giftcard(code, withdrawal_method, email, details):
    """Redeem a gift card into a payout request."""
    request = {"withdrawalMethod": withdrawal_method, "email": email}
    for item in details:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"'{item}' is not key=value", param_hint="--detail")
        request[key.strip()] = value.strip()

    result = get_giftcard_service().redeem(code, request)
    if not result.ok:
        _fail(result)
    click.echo(f"PASS Redeemed gift card {result.card.code}")
    _print_card(result.card)


@giftcards_group.command('expire')
@click.argument('code')
@with_appcontext
def expire_giftcard(code):
    """Expire an active gift card."""
    result = get_giftcard_service().expire(code)
    if not result.ok:
        _fail(result)
    click.echo(f"PASS Expired gift card {result.card.code}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(giftcards_group)
