"""
Courier (Bob Go) -> platform shipment status mapping.

Courier flow:
  1. Fulfillment created (method_status "pending-collection") -> dp_assigned
  2. Tracking "collected"                                   -> bag_picked
  3. Tracking "out_for_delivery"                            -> out_for_delivery
  4. Tracking "delivered"                                   -> delivery_done
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from courier_bridge.schemas import CourierWebhookPayload

logger = logging.getLogger(__name__)

STATUS_MAPPING: Dict[str, str] = {
    # fulfillment webhook (method_status)
    "pending-collection": "dp_assigned",
    # tracking webhook (status)
    "collected": "bag_picked",
    "out_for_delivery": "out_for_delivery",
    "out for delivery": "out_for_delivery",
    "delivered": "delivery_done",
    "delivery_done": "delivery_done",
    "in_transit": "in_transit",
    "ready_for_pickup": "ready_for_pickup",
    "cancelled": "cancelled",
    "failed_delivery": "return_initiated",
    "returned": "return_bag_delivered",
}


def map_courier_status(webhook: CourierWebhookPayload) -> Optional[str]:
    """Platform status for a courier callback; ``method_status`` wins over ``status``."""
    for field in ("method_status", "status"):
        raw = getattr(webhook, field)
        if not raw:
            continue
        mapped = STATUS_MAPPING.get(raw.lower())
        if mapped:
            logger.debug("Mapped courier %s %r -> %r", field, raw, mapped)
            return mapped

    logger.warning(
        "No platform status mapping for courier webhook status=%r method_status=%r",
        webhook.status, webhook.method_status,
    )
    return None


def extract_shipment_id(webhook: CourierWebhookPayload) -> Optional[str]:
    """The courier echoes the platform shipment id back as ``channel_order_number``."""
    if webhook.channel_order_number:
        return webhook.channel_order_number
    nested = (webhook.order or {}).get("channel_order_number")
    return str(nested) if nested else None


def reason_text(webhook: CourierWebhookPayload) -> str:
    if webhook.method_status:
        return f"BobGo: {webhook.method_status}"
    return f"BobGo: {webhook.status or 'Status updated'}"


def build_status_update(shipment_id: str, status: str, reason: str) -> Dict[str, Any]:
    """Body for the platform's shipment status transition endpoint."""
    return {
        "statuses": [
            {
                "shipments": [
                    {
                        "identifier": shipment_id,
                        "reasons": {
                            "entities": [
                                {
                                    "filters": [],
                                    "data": {"reason_id": 1, "reason_text": reason},
                                }
                            ]
                        },
                        "data_updates": {},
                        "transition_comments": [
                            {"title": "BobGo Status Update", "message": reason}
                        ],
                    }
                ],
                "status": status,
                "exclude_bags_next_state": "",
                "split_shipment": False,
            }
        ],
        "task": True,
        "force_transition": False,
        "lock_after_transition": False,
        "unlock_before_transition": True,
        "resume_tasks_after_unlock": False,
    }
