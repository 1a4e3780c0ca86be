from __future__ import annotations

import logging
from typing import Any

from ..config import DEFAULT_SETTINGS, Settings
from ..store import DataStore
from .aggregator import business_analytics

logger = logging.getLogger(__name__)


def _format_email(name: str, window_days: int, rows: list[dict[str, Any]]) -> str:
    lines = [f"Hola {name},", "", f"Este es el resumen de tus comercios de los últimos {window_days} días:", ""]
    for row in rows:
        lines.append(
            f"- {row['business_name']}: {row['total_views']} visitas, "
            f"{row['total_whatsapp_clicks']} clics a WhatsApp, "
            f"{row['total_website_clicks']} clics al sitio web"
        )
    return "\n".join(lines)


def send_monthly_summary(store: DataStore, settings: Settings = DEFAULT_SETTINGS) -> dict[str, Any]:
    """Build each merchant's performance summary and "send" it.

    Delivery is simulated: every e-mail is written to the log.
    """
    sent = 0
    for merchant in store.merchants():
        businesses = store.businesses_owned_by(merchant.id)
        if not businesses:
            continue
        rows = [
            {"business_name": b.name, **business_analytics(store, b.id, settings)}
            for b in businesses
        ]
        body = _format_email(merchant.name, settings.analytics_window_days, rows)
        logger.info("Simulated summary e-mail to %s:\n%s", merchant.email, body)
        sent += 1
    return {"message": f"Monthly summary sent to {sent} merchants.", "sent": sent}
