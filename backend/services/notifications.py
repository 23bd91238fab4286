"""Discord webhook posts for new orders. Failures are logged, never raised."""
from __future__ import annotations

import logging
from decimal import Decimal

import requests

from backend.app.db.models.models_v1 import ResellerOrder, TransferOrder

logger = logging.getLogger(__name__)

TIMEOUT_S = 5

RESELLER_COLOR = 0x3498DB
TRANSFER_COLOR = 0x2ECC71


def _peso(amount) -> str:
    return f"₱{Decimal(amount or 0):,.2f}"


def _items_field(lines) -> str:
    text = "\n".join(f"• {l.sku} {l.description or ''} x{l.quantity}".rstrip() for l in lines)
    # discord caps field values at 1024 chars
    return text[:1021] + "..." if len(text) > 1024 else text or "-"


def build_reseller_embed(order: ResellerOrder) -> dict:
    fields = [
        {"name": "Reseller", "value": order.reseller_name, "inline": True},
        {"name": "Zone", "value": order.zone_name or "-", "inline": True},
        {"name": "Total", "value": _peso(order.total_amount), "inline": True},
        {"name": "Items", "value": _items_field(order.lines), "inline": False},
    ]
    if order.address:
        fields.append({"name": "Address", "value": order.address, "inline": False})
    return {
        "title": f"New reseller order #{order.id}",
        "color": RESELLER_COLOR,
        "fields": fields,
        "timestamp": order.created_at.isoformat() if order.created_at else None,
    }


def build_transfer_embed(order: TransferOrder) -> dict:
    return {
        "title": f"New transfer order #{order.id}",
        "color": TRANSFER_COLOR,
        "fields": [
            {"name": "From", "value": order.from_location.name, "inline": True},
            {"name": "To", "value": order.destination.name, "inline": True},
            {"name": "Total", "value": _peso(order.total_amount), "inline": True},
            {"name": "Items", "value": _items_field(order.lines), "inline": False},
        ],
        "timestamp": order.created_at.isoformat() if order.created_at else None,
    }


def post_embed(webhook_url: str | None, embed: dict) -> bool:
    if not webhook_url:
        logger.warning("discord webhook not configured, skipping notification: %s", embed.get("title"))
        return False
    try:
        r = requests.post(webhook_url, json={"embeds": [embed]}, timeout=TIMEOUT_S)
        r.raise_for_status()
    except requests.RequestException as exc:
        logger.error("discord notification failed: %s", exc)
        return False
    return True

