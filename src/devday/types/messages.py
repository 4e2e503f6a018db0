"""Message-level types shared by the source parsers."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class MessageType(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Role(str, Enum):
    USER = "User"
    ASSISTANT = "Assistant"


@dataclass
class TokenUsage:
    input: int = 0
    output: int = 0
    reasoning: int = 0
    cache_read: int = 0
    cache_write: int = 0
    total: int = 0

    @classmethod
    def of(
        cls,
        input: int = 0,
        output: int = 0,
        reasoning: int = 0,
        cache_read: int = 0,
        cache_write: int = 0,
    ) -> "TokenUsage":
        """Build a usage record whose total is the sum of its components."""
        return cls(
            input=input,
            output=output,
            reasoning=reasoning,
            cache_read=cache_read,
            cache_write=cache_write,
            total=input + output + reasoning + cache_read + cache_write,
        )

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input=self.input + other.input,
            output=self.output + other.output,
            reasoning=self.reasoning + other.reasoning,
            cache_read=self.cache_read + other.cache_read,
            cache_write=self.cache_write + other.cache_write,
            total=self.total + other.total,
        )


@dataclass
class ChatEvent:
    ts: int  # ms epoch
    role: Role
    text: str


@dataclass
class ToolEvent:
    ts: int
    name: str
    args: Any


@dataclass
class TokenSnapshot:
    """Cumulative token totals as reported at one instant."""
    ts: int
    input: int = 0
    cached_input: int = 0
    output: int = 0
    reasoning: int = 0
