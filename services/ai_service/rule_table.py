"""
Canned answers for questions about the assistant itself.
Checked against the raw user text before any service is called.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern

from config.app_config import AppConfig, UIConfig


@dataclass(frozen=True)
class ResponseRule:
    """One pattern and the answer it triggers"""
    pattern: Pattern[str]
    response: str

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


class RuleTable:
    """Ordered rules; the first match wins"""

    def __init__(self, rules: Iterable[ResponseRule] = ()):
        self._rules: List[ResponseRule] = list(rules)

    def __len__(self) -> int:
        return len(self._rules)

    def match(self, text: str) -> Optional[str]:
        """Canned response for the first matching rule, or None"""
        for rule in self._rules:
            if rule.matches(text):
                return rule.response
        return None


def build_default_rule_table(ui_config: Optional[UIConfig] = None, powered_by: Optional[str] = None) -> RuleTable:
    """
    Identity, authorship and company questions

    Args:
        ui_config: Assistant and creator names
        powered_by: Models to name; defaults to the configured ones
    """
    ui = ui_config or UIConfig()
    name = ui.assistant_name
    powered_by = powered_by or ui.powered_by or AppConfig().powered_by

    return RuleTable([
        ResponseRule(
            re.compile(r"\b(what'?s\s*(your|yr)\s*name|who\s*(are|r)\s*you|your\s*name)\b", re.IGNORECASE),
            f"My name is {name}, powered by {powered_by}."
        ),
        ResponseRule(
            re.compile(
                r"\b(who\s*(made|created|developed|built|trained|programmed)\s*(you|friday)"
                r"|developers?|creators?|trainers?|google|built|trained)\b",
                re.IGNORECASE
            ),
            f"I was developed by {ui.creators}, powered by {powered_by}."
        ),
        ResponseRule(
            re.compile(
                r"\b(is\s*(this|you|friday)\s*(a\s*company|company)|company\s*(behind|of)|employees)\b",
                re.IGNORECASE
            ),
            f"No, I'm not a company. I was created by {ui.creators}, powered by {powered_by}."
        ),
    ])
