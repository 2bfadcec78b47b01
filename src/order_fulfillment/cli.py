"""Command line entry point: serve, database setup, SMTP check and event simulation."""

import asyncio
import logging
import os
import sys

import click

from order_fulfillment.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_URL = os.getenv("WEBHOOK_URL", "http://localhost:8000/webhooks/stripe/")


def _parse_cart(products: tuple[str, ...]) -> list[dict]:
    """Turn ``id[:quantity]`` options into cart entries."""
    cart = []
    for entry in products:
        product_id, _, quantity = entry.partition(":")
        try:
            cart.append({"id": product_id, "quantite": int(quantity) if quantity else 1})
        except ValueError as e:
            raise click.BadParameter(f"invalid quantity in {entry!r}", param_hint="--product") from e
    return cart


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool):
    """Order fulfillment service tools."""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, show_default=True)
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool):
    """Run the webhook HTTP service."""
    import uvicorn

    uvicorn.run(
        "order_fulfillment.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command("init-db")
def init_db():
    """Create the orders and products tables."""
    from order_fulfillment.storage.postgres import PostgresDatabase

    async def run():
        database = PostgresDatabase(settings)
        await database.start()
        try:
            await database.ensure_schema()
        finally:
            await database.stop()

    asyncio.run(run())
    click.echo("Schema ready")


@cli.command("smtp-check")
@click.option("--to", "recipient", default=None, help="Also send a test e-mail to this address")
def smtp_check(recipient: str | None):
    """Verify SMTP credentials and optionally send a test e-mail."""
    from order_fulfillment.notifications.email import SmtpEmailChannel

    channel = SmtpEmailChannel.from_settings(settings)

    async def run() -> bool:
        if not await channel.verify():
            return False
        if recipient:
            result = await channel.send_test_message(recipient)
            if not result.success:
                click.echo(f"  Send failed: {result.error}", err=True)
                return False
            click.echo(f"  Test e-mail sent (id={result.response_id})")
        return True

    if not asyncio.run(run()):
        sys.exit(1)
    click.echo("SMTP OK")


@cli.command("send-event")
@click.option("--url", default=DEFAULT_WEBHOOK_URL, help="Webhook URL", show_default=True)
@click.option("--secret", default=None, help="Webhook signing secret (defaults to STRIPE_WEBHOOK_SECRET)")
@click.option(
    "--product",
    "products",
    multiple=True,
    help="Cart entry as id[:quantity]; repeat for several products",
)
@click.option("--amount", default=1500, help="Amount total in minor units", show_default=True)
@click.option("--session-id", default=None, help="Checkout session id (random by default)")
@click.option("--email", default="jeanne.martin@example.com", show_default=True)
@click.option("--times", default=1, help="Deliver the same event this many times", show_default=True)
@click.option("--concurrent", is_flag=True, help="Deliver repeated events simultaneously")
@click.option("--invalid-signature", is_flag=True, help="Send with an invalid signature")
def send_event(
    url: str,
    secret: str | None,
    products: tuple[str, ...],
    amount: int,
    session_id: str | None,
    email: str,
    times: int,
    concurrent: bool,
    invalid_signature: bool,
):
    """Send a signed checkout.session.completed event to the service."""
    from order_fulfillment.simulator import CheckoutWebhookSimulator

    simulator = CheckoutWebhookSimulator(
        gateway_url=url,
        webhook_secret=secret or settings.stripe_webhook_secret,
    )
    event = simulator.generate_event(
        cart=_parse_cart(products),
        amount_total=amount,
        session_id=session_id,
        customer_email=email,
    )
    click.echo(f"Session: {event['data']['object']['id']}")

    async def run():
        if invalid_signature:
            return [await simulator.send_webhook(event, invalid_signature=True)]
        return await simulator.replay(event, times=times, concurrent=concurrent)

    try:
        responses = asyncio.run(run())
    except Exception as e:
        click.echo(f"  Error: {e}", err=True)
        sys.exit(1)

    for i, response in enumerate(responses, start=1):
        result = response.json()
        click.echo(f"Delivery {i}/{len(responses)}: HTTP {response.status_code}")
        click.echo(f"  Status: {result.get('status')}")
        click.echo(f"  Order ID: {result.get('order_id') or 'N/A'}")
        if result.get("message"):
            click.echo(f"  Message: {result.get('message')}")


if __name__ == "__main__":
    cli()
