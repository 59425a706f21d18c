"""
Optional predictive strategy for AI players.

A StrategyProvider suggests an action from a dict of player features. The
decision engine treats its answer as an auxiliary signal: it may be slow,
wrong or missing, and the rule-based strategy is always there to fall back on.
OpenAIStrategyProvider asks an OpenAI-compatible chat endpoint.
"""

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from openai import AsyncOpenAI

from holdem.errors import StrategyError

VALID_ACTIONS = ('fold', 'call', 'raise')


@dataclass
class Decision:
    action: str
    amount: int = 0


class StrategyProvider(ABC):
    """Source of suggested actions outside the rule-based strategy."""

    @abstractmethod
    async def predict(self, features: Dict[str, Any]) -> Decision:
        """Return a suggested Decision, or raise StrategyError."""


class OpenAIStrategyProvider(StrategyProvider):
    SYSTEM_PROMPT = (
        "You are an expert poker player. Analyze the game state and make the best decision. "
        "Respond with valid JSON containing 'action' (fold/call/raise) and 'amount' "
        "(0 for fold/call, chips to put in for raise)."
    )

    def __init__(self, client: Any, model: str = 'llama-3.1-8b-instant', temperature: float = 0.7):
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_env(cls) -> Optional["OpenAIStrategyProvider"]:
        """Build a provider from AI_API_KEY / AI_API_BASE_URL, or None if unconfigured."""
        load_dotenv()
        api_key = os.getenv('AI_API_KEY')
        base_url = os.getenv('AI_API_BASE_URL')

        if not api_key or not base_url:
            logging.info("AI_API_KEY or AI_API_BASE_URL not configured, using rule-based AI only")
            return None

        timeout = float(os.getenv('AI_TIMEOUT', '5'))
        client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        logging.info(f"AI strategy client configured with endpoint: {base_url}")
        return cls(client, model=os.getenv('AI_MODEL', 'llama-3.1-8b-instant'))

    async def predict(self, features: Dict[str, Any]) -> Decision:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": self._create_poker_prompt(features)},
                ],
                max_tokens=150,
                temperature=self.temperature,
            )
        except Exception as e:
            raise StrategyError(f"AI API call failed: {str(e)[:100]}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise StrategyError("AI returned empty response")
        return parse_decision(content.strip())

    def _create_poker_prompt(self, features: Dict[str, Any]) -> str:
        """Create a detailed prompt for the AI"""
        hand = ", ".join(features.get('hole_cards', [])) or "None"
        community = ", ".join(features.get('community_cards', [])) or "None"
        call_amount = features.get('to_call', 0)

        return f"""
POKER GAME STATE:
- Your hand: {hand}
- Community cards: {community}
- Your chips: {features.get('chips', 0)}
- Pot size: {features.get('pot', 0)}
- Current highest bet: {features.get('current_bet', 0)}
- Amount to call: {call_amount}
- Opponents still in the hand: {features.get('opponents', 0)}
- Estimated hand strength (0-1): {features.get('hand_strength', 0):.2f}
- Pot odds: {features.get('pot_odds', 0):.2f}

BETTING ROUND: {features.get('phase', 'preflop')}

Your options:
1. FOLD - Give up your hand (amount: 0)
2. CALL - Match the current bet (amount: {call_amount})
3. RAISE - Put in more than the call (amount: more than {call_amount})

Respond with JSON: {{"action": "fold/call/raise", "amount": number}}
"""


def parse_decision(content: str) -> Decision:
    """Extract a Decision from a model reply (JSON preferred, plain text accepted)."""
    if '{' in content and '}' in content:
        json_str = content[content.find('{'):content.rfind('}') + 1]
        try:
            decision = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise StrategyError(f"Unparseable AI reply: {content[:100]}") from e
        action = str(decision.get('action', '')).lower()
        if action not in VALID_ACTIONS:
            raise StrategyError(f"AI suggested unknown action: {action!r}")
        try:
            amount = int(decision.get('amount', 0) or 0)
        except (TypeError, ValueError) as e:
            raise StrategyError(f"AI suggested invalid amount: {decision.get('amount')!r}") from e
        return Decision(action, max(amount, 0))

    content_lower = content.lower()
    if 'fold' in content_lower:
        return Decision('fold')
    if 'raise' in content_lower:
        numbers = re.findall(r'\d+', content)
        if not numbers:
            raise StrategyError("AI suggested a raise without an amount")
        return Decision('raise', int(numbers[-1]))
    if 'call' in content_lower or 'check' in content_lower:
        return Decision('call')
    raise StrategyError(f"Unparseable AI reply: {content[:100]}")


def validate_decision(decision: Any) -> Decision:
    """Check a provider's suggestion before it is trusted; raises StrategyError."""
    if not isinstance(decision, Decision):
        raise StrategyError(f"Provider returned {type(decision).__name__}, not a Decision")
    if decision.action not in VALID_ACTIONS:
        raise StrategyError(f"Provider suggested unknown action: {decision.action!r}")
    try:
        amount = int(decision.amount)
    except (TypeError, ValueError):
        raise StrategyError(f"Provider suggested invalid amount: {decision.amount!r}") from None
    if amount < 0:
        raise StrategyError(f"Provider suggested negative amount: {amount}")
    return Decision(decision.action, amount)
