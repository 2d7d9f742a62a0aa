"""
Adapter module - transports to the external agent service.
"""
from trainer_agent.services.adapter.transport import (
    AgentTransport,
    AgentTransportError,
    HttpAgentTransport,
)

__all__ = ["AgentTransport", "AgentTransportError", "HttpAgentTransport"]
