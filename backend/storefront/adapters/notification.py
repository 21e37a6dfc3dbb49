import logging
from decimal import Decimal
from typing import Callable, Dict, List, Optional

log = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when an order notification cannot be rendered or dispatched."""
    pass


def _money(value) -> str:
    return f"${Decimal(str(value)):,.2f}"


class LoggingNotificationDispatcher:
    """
    Order confirmation dispatcher that renders the customer and internal
    emails and logs them instead of sending.

    recipients_provider returns (internal_addresses, customer_cc_addresses);
    it is called per notification so admin changes apply immediately.
    """

    def __init__(
        self,
        store_name: str,
        sales_email: str,
        recipients_provider: Optional[Callable[[], tuple]] = None,
        enabled: bool = True,
    ):
        self.store_name = store_name
        self.sales_email = sales_email
        self.recipients_provider = recipients_provider
        self.enabled = enabled

    def health_check(self) -> bool:
        return self.enabled

    def _recipients(self):
        internal: List[str] = []
        cc: List[str] = []
        if self.recipients_provider:
            internal, cc = self.recipients_provider()
        return list(internal) or [self.sales_email], list(cc)

    def render_customer_email(self, payload: Dict) -> str:
        lines = "\n".join(
            f"  <li>{it['name']} - Cantidad: {it['quantity']} - {_money(it['price'])}</li>"
            for it in payload["items"]
        )
        return (
            f"<h2>¡Gracias por tu compra en {self.store_name}!</h2>\n"
            f"<p>Hola {payload['user_name']},</p>\n"
            f"<p>Tu pedido <strong>#{payload['order_number']}</strong> ha sido confirmado exitosamente.</p>\n"
            f"<h3>Detalles del pedido:</h3>\n<ul>\n{lines}\n</ul>\n"
            f"<p><strong>Total: {_money(payload['total_amount'])}</strong></p>\n"
            f"<p>Nos pondremos en contacto contigo pronto para coordinar los detalles de tu viaje.</p>\n"
            f"<p>¡Gracias por elegir {self.store_name}!</p>"
        )

    def render_internal_email(self, payload: Dict) -> str:
        lines = "\n".join(
            f"  <li>{it['name']} - Cantidad: {it['quantity']} - {_money(it['price'])}</li>"
            for it in payload["items"]
        )
        return (
            "<h2>Nuevo Pedido Recibido</h2>\n"
            f"<p><strong>Número de Pedido:</strong> #{payload['order_number']}</p>\n"
            f"<p><strong>Cliente:</strong> {payload['user_name']} ({payload['user_email']})</p>\n"
            f"<p><strong>Total:</strong> {_money(payload['total_amount'])}</p>\n"
            f"<h3>Productos:</h3>\n<ul>\n{lines}\n</ul>\n"
            "<p>Por favor, procesa este pedido en el sistema administrativo.</p>"
        )

    def send_order_notification(self, payload: Dict) -> Dict:
        """
        payload: {order_number, user_email, user_name, total_amount,
                  items: [{name, quantity, price}]}
        Returns {"success": bool, "order_number": str}.
        """
        order_number = payload.get("order_number")
        if not self.enabled:
            log.info("Notifications disabled; skipping order %s", order_number)
            return {"success": False, "order_number": order_number, "reason": "disabled"}

        try:
            customer_html = self.render_customer_email(payload)
            internal_html = self.render_internal_email(payload)
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise NotificationError(f"Invalid notification payload: {e}") from e

        internal, cc = self._recipients()
        log.info(
            "Customer email: %s",
            {
                "to": payload["user_email"],
                "cc": cc,
                "subject": f"Confirmación de Pedido #{order_number} - {self.store_name}",
                "html": customer_html,
            },
        )
        log.info(
            "Internal email: %s",
            {
                "to": internal,
                "subject": f"Nuevo Pedido #{order_number}",
                "html": internal_html,
            },
        )
        return {"success": True, "order_number": order_number}
