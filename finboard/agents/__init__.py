"""AI agents package."""

from finboard.agents.ai_agents import (
    AdvisorAgent,
    AgentError,
    AgentResponseError,
    BookkeepingAgent,
    DraftingAgent,
    ModelCallError,
    extract_json,
)
from finboard.agents.client import GeminiClient, GenerateFn, InlineMedia

__all__ = [
    "AdvisorAgent",
    "AgentError",
    "AgentResponseError",
    "BookkeepingAgent",
    "DraftingAgent",
    "GeminiClient",
    "GenerateFn",
    "InlineMedia",
    "ModelCallError",
    "extract_json",
]
