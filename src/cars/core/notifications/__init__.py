"""Outbound notifications."""

from src.cars.core.notifications.email import send_email

__all__ = ["send_email"]
