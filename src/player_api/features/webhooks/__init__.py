"""Outbound webhook subscriptions and delivery."""

from .events import EventPublisher, WebhookEvent, publish_after_commit
from .runtime import WebhookRuntime

__all__ = ["EventPublisher", "WebhookEvent", "WebhookRuntime", "publish_after_commit"]
