"""Application layer: interfaces and services.

Depends only on domain, wire schemas and protocol definitions (DIP).
Infrastructure implements the interfaces (cache, gateways).
"""

from evalsync.application.interfaces import IRequestCache, IResponsesGateway, IRosterGateway
from evalsync.application.services import (
    EvaluationResponseSynchronizer,
    PendingEvaluationsService,
    RosterManager,
)

__all__ = [
    "EvaluationResponseSynchronizer",
    "IRequestCache",
    "IResponsesGateway",
    "IRosterGateway",
    "PendingEvaluationsService",
    "RosterManager",
]
