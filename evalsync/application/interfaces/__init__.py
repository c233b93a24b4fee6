"""Application interfaces (ports): cache and gateway protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from evalsync.infrastructure.
"""

from evalsync.application.interfaces.cache import IRequestCache
from evalsync.application.interfaces.gateways import IResponsesGateway, IRosterGateway

__all__ = [
    "IRequestCache",
    "IResponsesGateway",
    "IRosterGateway",
]
