# Overview: Flask CLI command groups for bootstrap, policy administration, and inspection.

# backend/orderflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent) and save the default policy if none exists.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Policy administration:
# - python -m flask policy show
#   Print the policy new orders are created under.
# - python -m flask policy set --max-modifications 3 --deadline-hours 24 --allow-cancellations --require-reason
#   Replace the whole policy document (unspecified flags fall back to the defaults).
#
# Order inspection:
# - python -m flask orders list [--status processing] [--user-id u1] [--limit 50]
# - python -m flask orders show 42
#
# Modification requests:
# - python -m flask modifications pending [--limit 50]
#   Arbitration queue, oldest first.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import ModificationPolicy
from .services import order_store, policy_service, order_service, modification_service, eligibility_service
from .services.order_store import OrderNotFoundError
from .time_utils import utcnow, to_utc_z
from .validation import ValidationError


def _cents(value: int) -> str:
    return f"{value / 100:.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create tables and persist the default policy document."""
    click.echo("BUILD  Creating all tables...")
    db.create_all()

    if order_store.read_policy_record() is None:
        policy = order_store.write_policy_config(order_store.read_policy_config(), updated_by="system")
        click.echo(f"PASS Saved default policy: {policy.to_dict()}")
    else:
        click.echo("PASS Policy already saved, leaving it unchanged")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init-db' to initialize.")


@click.group('policy')
def policy_group():
    """Modification and cancellation policy."""


@policy_group.command('show')
@with_appcontext
def show_policy():
    doc = policy_service.get_policy_document()
    click.echo("\n" + "="*60)
    for key in policy_service.POLICY_FIELDS:
        click.echo(f"{key:<35} {doc[key]}")
    click.echo(f"{'updated_by':<35} {doc.get('updated_by') or '-'}")
    click.echo(f"{'updated_at':<35} {doc.get('updated_at') or '-'}")
    click.echo("="*60 + "\n")


@policy_group.command('set')
@click.option('--max-modifications', type=int, default=ModificationPolicy.default_max_modifications,
              show_default=True, help='Default max modification requests per order')
@click.option('--deadline-hours', type=int, default=ModificationPolicy.modification_deadline_hours,
              show_default=True, help='Hours after placement during which requests are accepted')
@click.option('--allow-cancellations/--no-cancellations', default=True, show_default=True)
@click.option('--require-reason/--no-require-reason', default=True, show_default=True)
@with_appcontext
def set_policy(max_modifications, deadline_hours, allow_cancellations, require_reason):
    """Replace the whole policy document."""
    try:
        policy = policy_service.update_policy(
            {
                "default_max_modifications": max_modifications,
                "modification_deadline_hours": deadline_hours,
                "allow_cancellations": allow_cancellations,
                "require_reason_for_cancellation": require_reason,
            },
            updated_by="cli",
        )
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Policy saved: {policy.to_dict()}")


@click.group('orders')
def orders_group():
    """Order inspection."""


@orders_group.command('list')
@click.option('--status', help='Filter by fulfillment status')
@click.option('--user-id', help='Filter by buyer')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def list_orders_cli(status, user_id, limit):
    try:
        orders = order_service.list_orders(user_id=user_id, status=status, limit=limit)
    except ValidationError as e:
        raise click.ClickException(str(e))

    if not orders:
        click.echo("No orders found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<6} {'User':<20} {'Status':<12} {'Payment':<12} {'Total':>10} {'Mods':>6}  {'Created'}")
    click.echo("="*100)
    for o in orders:
        mods = f"{o.modification_count}/{o.max_modifications_allowed if o.max_modifications_allowed is not None else '-'}"
        click.echo(
            f"{o.id:<6} {o.user_id:<20} {o.status:<12} {o.payment_status:<12} "
            f"{_cents(o.total_cents):>10} {mods:>6}  {to_utc_z(o.created_at)}"
        )
    click.echo("="*100 + "\n")


@orders_group.command('show')
@click.argument('order_id', type=int)
@with_appcontext
def show_order_cli(order_id):
    try:
        order = order_service.get_order(order_id)
    except OrderNotFoundError as e:
        raise click.ClickException(str(e))

    policy = order_store.read_policy_config()
    summary = eligibility_service.summarize(order, policy, utcnow())

    click.echo(f"\nOrder {order.id} ({order.user_id})")
    click.echo(f"  status: {order.status}   payment: {order.payment_status}")
    click.echo(f"  total: {_cents(order.total_cents)}   created: {to_utc_z(order.created_at)}")
    for line in order.lines:
        click.echo(f"  - {line.quantity} x {line.product_name or line.product_id} @ {_cents(line.unit_price_cents)}")
    click.echo(
        f"  modifications: {order.modification_count} used, {summary['remaining_slots']} remaining, "
        f"deadline {summary['modification_deadline']}"
    )
    if not summary["can_modify"]:
        click.echo(f"  not modifiable: {summary['message']}")
    for m in order.modifications:
        click.echo(f"    #{m.id} [{m.status}] {m.description}")
        if m.response_text:
            click.echo(f"        response ({m.responded_by}): {m.response_text}")
    click.echo("")


@click.group('modifications')
def modifications_group():
    """Modification request queue."""


@modifications_group.command('pending')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def pending_modifications_cli(limit):
    requests = modification_service.list_pending_requests(limit=limit)
    if not requests:
        click.echo("No pending modification requests.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<6} {'Order':<7} {'Requested by':<20} {'Requested at':<22} {'Description'}")
    click.echo("="*100)
    for m in requests:
        desc = m.description if len(m.description) <= 40 else m.description[:37] + "..."
        click.echo(f"{m.id:<6} {m.order_id:<7} {m.requested_by:<20} {to_utc_z(m.requested_at):<22} {desc}")
    click.echo("="*100 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(policy_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(modifications_group)
