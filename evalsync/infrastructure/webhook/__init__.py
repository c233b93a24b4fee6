"""Webhook API access: transport, answer normalization, client and gateways."""

from evalsync.infrastructure.webhook.client import WebhookClient
from evalsync.infrastructure.webhook.responses_gateway import EvaluationResponsesGateway
from evalsync.infrastructure.webhook.roster_gateway import RosterGateway

__all__ = [
    "EvaluationResponsesGateway",
    "RosterGateway",
    "WebhookClient",
]
