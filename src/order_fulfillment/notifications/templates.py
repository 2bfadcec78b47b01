"""HTML and plain-text rendering of the order e-mails."""

from decimal import Decimal
from html import escape
from urllib.parse import quote

from order_fulfillment.config import Settings
from order_fulfillment.core.models import Order, OrderLineItem

CURRENCY_SYMBOLS = {"eur": "€", "usd": "$", "gbp": "£"}

_STYLE = """
    body { font-family: Arial, sans-serif; color: #333; }
    .header { text-align: center; padding: 20px; }
    .content { padding: 0 20px; }
    h2 { color: #D48B9C; }
    table { width: 100%; border-collapse: collapse; margin: 20px 0; }
    th, td { padding: 8px; border: 1px solid #ddd; text-align: left; }
    th { background-color: #f7f7f7; }
    .total { font-weight: bold; }
    .review-link { display: inline-block; padding: 8px 12px; background: #D48B9C;
                   color: #fff; border-radius: 6px; text-decoration: none; margin-top: 6px; }
    ul.product-list { list-style: none; padding: 0; margin: 0; }
    ul.product-list li { margin-bottom: 12px; padding-bottom: 8px; border-bottom: 1px dashed #eee; }
    .footer { text-align: center; font-size: 0.9em; color: #777; margin: 30px 0 10px; }
"""


def format_money(amount: Decimal, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.lower(), currency.upper())
    return f"{amount:.2f} {symbol}"


def review_url(item: OrderLineItem, frontend_base_url: str) -> str:
    """Link to the product page review form."""
    if not item.reference:
        return frontend_base_url or "#"
    return f"{frontend_base_url}/produit/{quote(item.reference, safe='')}#avis-produit"


def _items_table(order: Order) -> str:
    rows = "".join(
        f"""
          <tr>
            <td>{escape(item.display_name)}</td>
            <td>{escape(item.reference)}</td>
            <td>{item.quantity}</td>
            <td>{format_money(item.unit_price, order.currency)}</td>
            <td>{format_money(item.subtotal, order.currency)}</td>
          </tr>"""
        for item in order.items
    )
    return f"""
    <table>
      <thead>
        <tr>
          <th>Produit</th>
          <th>Référence</th>
          <th>Quantité</th>
          <th>Prix Unitaire</th>
          <th>Sous-total</th>
        </tr>
      </thead>
      <tbody>{rows}
      </tbody>
      <tfoot>
        <tr>
          <td colspan="4" class="total">Total</td>
          <td class="total">{format_money(order.total, order.currency)}</td>
        </tr>
      </tfoot>
    </table>"""


def _address_html(order: Order) -> str:
    address = order.shipping_address
    return (
        f"{escape(address.street)}<br/>\n"
        f"      {escape(address.postal_code)} {escape(address.city)}"
    )


def _items_text(order: Order) -> str:
    if not order.items:
        return "  (aucun article)"
    return "\n".join(
        f"  - {item.display_name} [{item.reference}] "
        f"{item.quantity} x {format_money(item.unit_price, order.currency)} "
        f"= {format_money(item.subtotal, order.currency)}"
        for item in order.items
    )


def _document(title: str, body: str, settings: Settings) -> str:
    site = settings.frontend_base_url
    site_link = f' – <a href="{escape(site)}">{escape(site)}</a>' if site else ""
    return f"""<!DOCTYPE html>
<html lang="fr">
<head>
  <meta charset="UTF-8" />
  <title>{escape(title)}</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="header"><h1>{escape(settings.shop_name)}</h1></div>
  <div class="content">{body}
  </div>
  <div class="footer">
    <p>{escape(settings.shop_name)}{site_link}</p>
  </div>
</body>
</html>
"""


def render_customer_receipt(order: Order, settings: Settings) -> tuple[str, str]:
    """
    Render the customer receipt.

    Returns:
        Tuple of (html body, plain-text body)
    """
    name = order.customer_name or "client"
    total = format_money(order.total, order.currency)
    base_url = settings.frontend_base_url

    review_items = "".join(
        f"""
      <li>
        <div style="font-weight:600;">{escape(item.display_name)}</div>
        <div>{item.quantity} × {format_money(item.unit_price, order.currency)}</div>
        <div>
          <a class="review-link" href="{escape(review_url(item, base_url))}" target="_blank" rel="noopener noreferrer">
            Laisser un avis sur ce produit
          </a>
        </div>
      </li>"""
        for item in order.items
    )

    body = f"""
    <h2>Merci pour votre commande, {escape(name)} !</h2>
    <p>Votre paiement de <strong>{total}</strong> a été validé avec succès.</p>

    <h3>Récapitulatif de votre commande</h3>{_items_table(order)}

    <p>Nous expédions votre commande à :</p>
    <p>
      {_address_html(order)}
    </p>

    <h3>Déposer un avis</h3>
    <p>Vous pouvez laisser un avis pour chaque produit acheté :</p>
    <ul class="product-list">{review_items}
    </ul>"""

    address = order.shipping_address
    text = (
        f"Merci pour votre commande, {name} !\n\n"
        f"Votre paiement de {total} a été validé avec succès.\n\n"
        f"Récapitulatif :\n{_items_text(order)}\n"
        f"Total : {total}\n\n"
        f"Livraison :\n  {address.street}\n  {address.postal_code} {address.city}\n"
    )
    return _document("Confirmation de votre commande", body, settings), text


def render_operator_alert(order: Order, settings: Settings) -> tuple[str, str]:
    """
    Render the new-order alert sent to the shop operator.

    Returns:
        Tuple of (html body, plain-text body)
    """
    placed_at = order.created_at.strftime("%d/%m/%Y %H:%M:%S %Z").strip()
    total = format_money(order.total, order.currency)

    body = f"""
    <h2>Nouvelle commande reçue</h2>
    <p><strong>Client :</strong> {escape(order.customer_name)} ({escape(order.customer_email)})</p>
    <p><strong>Livraison :</strong><br/>
      {_address_html(order)}
    </p>

    <h3>Détails de la commande</h3>{_items_table(order)}

    <p><em>Commande n°{order.id} – {escape(placed_at)}</em></p>
    <p><em>Session Stripe : {escape(order.stripe_session_id)}</em></p>"""

    address = order.shipping_address
    text = (
        f"Nouvelle commande n°{order.id} ({placed_at})\n\n"
        f"Client : {order.customer_name} ({order.customer_email})\n"
        f"Livraison : {address.street}, {address.postal_code} {address.city}\n\n"
        f"Articles :\n{_items_text(order)}\n"
        f"Total : {total}\n"
        f"Session Stripe : {order.stripe_session_id}\n"
    )
    return _document("Nouvelle commande reçue", body, settings), text
