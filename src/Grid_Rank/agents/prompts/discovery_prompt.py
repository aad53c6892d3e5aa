"""Competitor discovery prompt builder.

Constructs the Ollama message list asking for the strongest local
competitors of a business for a search keyword, as a JSON array.
"""

from pydantic import BaseModel, ConfigDict

from Grid_Rank.models.business import BusinessEntity

PROMPT_VERSION: str = "v1.0"

DEFAULT_COMPETITOR_COUNT: int = 20


class PromptMessage(BaseModel):
    """Single message in an Ollama chat messages list.

    Frozen because messages are immutable once built.
    """

    model_config = ConfigDict(frozen=True)

    role: str
    content: str


COMPETITOR_SCHEMA_HINT: str = (
    '[{"id": "...", "name": "...", "address": "...", "latitude": 0.0, "longitude": 0.0}]'
)

_DISCOVERY_SYSTEM_PROMPT: str = f"""\
# VERSION: {PROMPT_VERSION}

## Role
You are a local search analyst. You list the businesses that compete with a \
given business in local map results for a search keyword.

## Constraints
- Only list businesses near the given location that match the keyword.
- Never include the given business itself.
- Use real coordinates in decimal degrees.
- Do NOT invent businesses. Return fewer entries rather than guessing.

## Output Format
Respond with ONLY a JSON array of objects. No markdown, no commentary.
Each object must have exactly these properties:
{COMPETITOR_SCHEMA_HINT}

Field rules:
- `id`: a stable unique identifier such as a place ID.
- `latitude` / `longitude`: numbers, not strings.
"""


def build_discovery_messages(
    target: BusinessEntity,
    search_query: str,
    *,
    count: int = DEFAULT_COMPETITOR_COUNT,
) -> list[PromptMessage]:
    """Build the two-message list (system + user) for competitor discovery."""
    user_content = (
        "<user_input>\n"
        f"Keyword: {search_query}\n"
        f"Business: {target.name}\n"
        f"Address: {target.address}\n"
        f"Location: {target.location.latitude:.6f}, {target.location.longitude:.6f}\n"
        "</user_input>\n"
        "\n"
        f'Find the top {count} local competitors for the keyword "{search_query}" '
        f"near {target.name} at {target.address}. "
        f'Exclude "{target.name}" itself from the list.'
    )
    return [
        PromptMessage(role="system", content=_DISCOVERY_SYSTEM_PROMPT),
        PromptMessage(role="user", content=user_content),
    ]
