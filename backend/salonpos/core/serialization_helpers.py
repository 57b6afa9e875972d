"""
Generic serialization helpers.
No business logic here, only formatting utilities.
"""
from typing import Any, Dict


def serialize_decimal(value):
    """Decimal to float for JSON payloads"""
    if value is None:
        return None
    return float(value)


def serialize_datetime(value):
    """datetime / date / time to ISO string"""
    if value is None:
        return None
    return value.isoformat()


def serialize_appointment(appointment) -> Dict[str, Any]:
    """Detached, JSON-ready copy of an appointment and its items."""
    return {
        "id": appointment.id,
        "professional_id": appointment.professional_id,
        "customer_id": appointment.customer_id,
        "client_name": appointment.client_name,
        "start_time": serialize_datetime(appointment.start_time),
        "end_time": serialize_datetime(appointment.end_time),
        "duration_minutes": appointment.duration_minutes,
        "status": appointment.status,
        "total_value": serialize_decimal(appointment.total_value),
        "notes": appointment.notes,
        "items": [
            {
                "id": item.id,
                "kind": item.kind,
                "catalog_id": item.catalog_id,
                "name": item.name,
                "price": serialize_decimal(item.price),
                "duration_minutes": item.duration_minutes,
            }
            for item in appointment.items
        ],
    }
