"""
Chat Responder
==============
Keyword-matched answers about the latest usage batch.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import lru_cache
from numbers import Real

import structlog

from flexdash.schemas.usage import QueryResult

logger = structlog.get_logger()

# A responder returns None to let later rules answer.
Responder = Callable[[Sequence[QueryResult]], str | None]

DEFAULT_RESPONSE = (
    "I can help you analyze your Token Flex usage data. Try asking about current "
    "usage, trends, optimization tips, or specific chart information."
)

NO_DATA_RESPONSE = (
    "Please select a contract from the dropdown menu first to see your current usage data."
)

OPTIMIZATION_RESPONSE = (
    "To optimize your Token Flex costs:\n"
    "• Monitor usage patterns in the charts\n"
    "• Identify peak usage times to better plan capacity\n"
    "• Focus on optimizing high-consumption categories\n"
    "• Consider batch processing for better efficiency\n"
    "• Review unused or underutilized services"
)

TRENDS_RESPONSE = (
    "The time-based charts show your usage trends. Look for:\n"
    "• Peak usage periods during specific times\n"
    "• Seasonal variations in consumption\n"
    "• Growth trends in different categories\n"
    "• Opportunities for workload distribution"
)

KEYWORD_RESPONSES = {
    "export": (
        "Currently, you can view the charts and take screenshots. Data export "
        "functionality could be added in future updates."
    ),
    "real-time": (
        "The data refreshes when you select different contracts. For real-time "
        "monitoring, consider setting up automated reporting."
    ),
    "alerts": (
        "Usage alerts and notifications could be configured based on threshold "
        "limits for proactive monitoring."
    ),
    "history": (
        "Select different contracts to view historical usage patterns and compare "
        "consumption across time periods."
    ),
}


@dataclass(frozen=True)
class ChatRule:
    """Keywords that trigger a responder."""

    keywords: tuple[str, ...]
    respond: Responder

    def matches(self, message: str) -> bool:
        return any(keyword in message for keyword in self.keywords)


def _numeric(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def format_number(value: float) -> str:
    """Thousands-separated number, integral values without decimals."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{round(value, 3):,}"


def current_usage(results: Sequence[QueryResult]) -> str:
    if not results:
        return NO_DATA_RESPONSE

    total = 0.0
    categories: dict[str, None] = {}
    for item in results:
        for row in item.result:
            value = row.get("value")
            if _numeric(value) and value:
                total += value
            category = row.get("usageCategory")
            if category:
                categories[str(category)] = None

    main = ", ".join(list(categories)[:3])
    return (
        f"Based on your current contract data, you have {len(categories)} usage "
        f"categories with a total of {format_number(total)} tokens consumed. "
        f"The main categories are: {main}."
    )


def highest_usage(results: Sequence[QueryResult]) -> str | None:
    if not results:
        return None

    max_usage: float = 0
    top_category = ""
    for item in results:
        for row in item.result:
            value = row.get("value")
            if _numeric(value) and value > max_usage:
                max_usage = value
                top_category = row.get("usageCategory") or row.get("productName") or "Unknown"

    return (
        f'Your highest usage category is "{top_category}" with '
        f"{format_number(max_usage)} tokens consumed."
    )


def fixed(text: str) -> Responder:
    """Responder that always answers with the same text."""
    return lambda results: text


def default_rules() -> list[ChatRule]:
    """Rules in evaluation order; the first answer wins."""
    rules = [
        ChatRule(("current usage", "how much"), current_usage),
        ChatRule(("highest", "most used"), highest_usage),
        ChatRule(("optimization", "reduce costs"), fixed(OPTIMIZATION_RESPONSE)),
        ChatRule(("trends", "pattern"), fixed(TRENDS_RESPONSE)),
    ]
    rules.extend(
        ChatRule((keyword,), fixed(text)) for keyword, text in KEYWORD_RESPONSES.items()
    )
    return rules


class ChatResponder:
    """
    Answers chat messages by walking an ordered list of keyword rules.

    Matching is a case-insensitive substring check. A matching rule may
    decline (for example when no usage data has been loaded yet), in which
    case evaluation continues with the next rule.
    """

    def __init__(
        self,
        rules: Sequence[ChatRule] | None = None,
        default: str = DEFAULT_RESPONSE,
    ):
        self.rules = list(rules) if rules is not None else default_rules()
        self.default = default

    def respond(self, message: str, results: Sequence[QueryResult] = ()) -> str:
        lower_message = message.lower()

        for rule in self.rules:
            if not rule.matches(lower_message):
                continue
            answer = rule.respond(results)
            if answer is not None:
                logger.debug("Chat rule matched", keywords=rule.keywords)
                return answer

        return self.default


@lru_cache
def get_chat_responder() -> ChatResponder:
    """Get cached chat responder instance."""
    return ChatResponder()
