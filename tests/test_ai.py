import asyncio
from types import SimpleNamespace

import pytest

from holdem.ai import (
    DecisionEngine,
    RuleBasedStrategy,
    chen_score,
    expected_value_action,
    pot_odds,
    preflop_strength,
)
from holdem.context import ActionHistory
from holdem.decision_cache import DecisionCache, hand_signature
from holdem.deck import parse_cards
from holdem.errors import StrategyError
from holdem.strategy_provider import (
    Decision,
    OpenAIStrategyProvider,
    StrategyProvider,
    parse_decision,
    validate_decision,
)

WEAK = ["7h", "2c"]
POCKET_ACES = ["Ah", "Ad"]


def preflop_state(to_call=10, pot=20):
    return {"to_call": to_call, "pot": pot, "current_phase": "preflop", "community": []}


def flop_state(board, to_call=0, pot=100):
    return {"to_call": to_call, "pot": pot, "current_phase": "flop", "community": parse_cards(board)}


class FixedProvider(StrategyProvider):
    def __init__(self, decision):
        self.decision = decision
        self.features = None

    async def predict(self, features):
        self.features = features
        return self.decision


class SlowProvider(StrategyProvider):
    async def predict(self, features):
        await asyncio.sleep(1)
        return Decision("raise", 500)


class BrokenProvider(StrategyProvider):
    async def predict(self, features):
        raise StrategyError("model unavailable")


# Pure helpers ---------------------------------------------------------

def test_pot_odds():
    assert pot_odds(20, 80) == pytest.approx(0.2)
    assert pot_odds(0, 100) == 0.0


@pytest.mark.parametrize(
    "win_probability, odds, expected",
    [(0.5, 0.2, "raise"), (0.3, 0.2, "call"), (0.1, 0.2, "fold"), (0.2, 0.2, "fold")],
)
def test_expected_value_action(win_probability, odds, expected):
    assert expected_value_action(win_probability, odds) == expected


def test_chen_score():
    assert chen_score(parse_cards(POCKET_ACES)) == 20
    assert chen_score(parse_cards(["Ah", "Kh"])) == 12
    assert chen_score(parse_cards(WEAK)) == -1.5
    assert preflop_strength(parse_cards(POCKET_ACES)) == 1.0
    assert preflop_strength(parse_cards(WEAK)) == 0.0


# Personalities --------------------------------------------------------

def test_mathematician_raises_with_a_clear_edge(make_player, stub_context, monkeypatch):
    strategy = RuleBasedStrategy(stub_context(0.0))
    player = make_player("bot", is_ai=True, personality="mathematician", hand=WEAK)
    monkeypatch.setattr(strategy, "calculate_pot_odds", lambda state: 0.2)
    monkeypatch.setattr(strategy, "calculate_win_probability", lambda p, state: 0.5)

    decision = strategy.decide(player, preflop_state(to_call=20, pot=80))

    assert decision == Decision("raise", 40)


def test_mathematician_folds_without_odds(make_player, stub_context, monkeypatch):
    strategy = RuleBasedStrategy(stub_context(0.0))
    player = make_player("bot", is_ai=True, personality="mathematician", hand=WEAK)
    monkeypatch.setattr(strategy, "calculate_pot_odds", lambda state: 0.2)
    monkeypatch.setattr(strategy, "calculate_win_probability", lambda p, state: 0.1)

    assert strategy.decide(player, preflop_state(to_call=20, pot=80)) == Decision("fold")


def test_conservative_folds_weak_hands(make_player, stub_context):
    player = make_player("bot", is_ai=True, personality="conservative", hand=WEAK)
    assert RuleBasedStrategy(stub_context(0.0)).decide(player, preflop_state()) == Decision("fold")
    assert RuleBasedStrategy(stub_context(0.9)).decide(player, preflop_state()) == Decision("call")


def test_conservative_raises_strong_made_hands(make_player, stub_context):
    player = make_player("bot", is_ai=True, personality="conservative", hand=POCKET_ACES)
    decision = RuleBasedStrategy(stub_context(0.9)).decide(player, flop_state(["As", "Kd", "Kc"]))
    assert decision.action == "raise"
    assert 0 < decision.amount <= player.chips


def test_aggressive_raises_grow_with_win_streak(make_player, stub_context):
    strategy = RuleBasedStrategy(stub_context(0.0))
    cold = make_player("cold", is_ai=True, personality="aggressive", hand=WEAK)
    hot = make_player("hot", is_ai=True, personality="aggressive", hand=WEAK)
    hot.win_streak = 5

    cold_raise = strategy.decide(cold, flop_state(["Ks", "Qd", "9c"]))
    hot_raise = strategy.decide(hot, flop_state(["Ks", "Qd", "9c"]))

    assert cold_raise.action == hot_raise.action == "raise"
    assert hot_raise.amount > cold_raise.amount


def test_aggressive_sometimes_just_calls(make_player, stub_context):
    player = make_player("bot", is_ai=True, personality="aggressive", hand=WEAK)
    assert RuleBasedStrategy(stub_context(0.9)).decide(player, preflop_state()) == Decision("call")


def test_deceptive_slow_plays_and_bluffs(make_player, stub_context):
    strategy = RuleBasedStrategy(stub_context(0.0))
    strong = make_player("strong", is_ai=True, personality="deceptive", hand=POCKET_ACES)
    weak = make_player("weak", is_ai=True, personality="deceptive", hand=WEAK)

    assert strategy.decide(strong, flop_state(["As", "Kd", "Kc"])) == Decision("call")
    assert strategy.decide(weak, flop_state(["Ks", "Qd", "9c"])).action == "raise"


def test_raise_size_is_capped_by_stack(make_player, stub_context):
    strategy = RuleBasedStrategy(stub_context(0.0))
    player = make_player("bot", chips=40, is_ai=True, hand=WEAK)
    assert strategy.calculate_raise_amount(player, pot=1000, factor=0.5) == 20
    assert strategy.raise_decision(player, {"to_call": 30, "pot": 1000}, 0.5) == Decision("raise", 40)


# Cache ----------------------------------------------------------------

def test_hand_signature_ignores_order():
    assert hand_signature(parse_cards(["Ah", "2c", "Kd"])) == hand_signature(parse_cards(["Kd", "Ah", "2c"]))


def test_cache_clears_when_full():
    cache = DecisionCache(max_size=2)
    cache.put(("Ah",), 0.1)
    cache.put(("Kh",), 0.2)
    cache.put(("Ah",), 0.3)
    assert len(cache) == 2

    cache.put(("Qh",), 0.4)

    assert len(cache) == 1
    assert cache.clears == 1
    assert cache.get(("Ah",)) is None
    assert cache.get(("Qh",)) == 0.4
    assert (cache.hits, cache.misses) == (1, 1)


def test_base_strength_is_cached(stub_context):
    context = stub_context(0.0)
    strategy = RuleBasedStrategy(context)
    hole = parse_cards(POCKET_ACES)

    first = strategy.base_strength(hole, [])
    second = strategy.base_strength(list(reversed(hole)), [])

    assert first == second
    assert context.cache.hits == 1
    assert len(context.cache) == 1


@pytest.mark.asyncio
async def test_warm_up_fills_cache(stub_context):
    context = stub_context(0.0)
    engine = DecisionEngine(context)
    hands = [parse_cards(POCKET_ACES), parse_cards(WEAK + ["Ks", "Qd", "9c"])]

    assert await engine.warm_up(hands, batch_size=1) == 2
    assert len(context.cache) == 2


# History and dynamic adjustment --------------------------------------

def test_history_drops_old_actions():
    now = [0.0]
    history = ActionHistory(maxlen=3, max_age=10, clock=lambda: now[0])
    history.record("alice", False, "raise", 10)
    now[0] = 5.0
    history.record("bob", False, "raise", 10)
    now[0] = 12.0
    assert [r.player for r in history.recent()] == ["bob"]
    for _ in range(5):
        history.record("carol", False, "call")
    assert len(history) == 3


def test_aggressive_raise_amplified_after_human_raises(make_player, stub_context):
    context = stub_context(0.0)
    engine = DecisionEngine(context)
    bot = make_player("bot", is_ai=True, personality="aggressive")
    for _ in range(3):
        context.history.record("human", False, "raise", 20)

    assert engine.apply_dynamic_adjustment(bot, Decision("raise", 100)) == Decision("raise", 120)


def test_dynamic_adjustment_ignores_ai_raises_and_other_personalities(make_player, stub_context):
    context = stub_context(0.0)
    engine = DecisionEngine(context)
    aggressive = make_player("bot", is_ai=True, personality="aggressive")
    calm = make_player("calm", is_ai=True, personality="conservative")
    for _ in range(2):
        context.history.record("human", False, "raise", 20)
    for _ in range(3):
        context.history.record("other-bot", True, "raise", 20)

    assert engine.apply_dynamic_adjustment(aggressive, Decision("raise", 100)) == Decision("raise", 100)
    context.history.record("human", False, "raise", 20)
    assert engine.apply_dynamic_adjustment(calm, Decision("raise", 100)) == Decision("raise", 100)


# Decision engine ------------------------------------------------------

@pytest.mark.asyncio
async def test_fold_with_nothing_to_call_becomes_check(make_player, stub_context):
    engine = DecisionEngine(stub_context(0.0))
    player = make_player("bot", is_ai=True, personality="conservative", hand=WEAK)
    assert await engine.decide(player, preflop_state(to_call=10)) == Decision("fold")
    assert await engine.decide(player, preflop_state(to_call=0)) == Decision("call")


@pytest.mark.asyncio
async def test_strength_failure_folds(make_player, stub_context, monkeypatch):
    engine = DecisionEngine(stub_context(0.9))
    player = make_player("bot", is_ai=True, personality="conservative", hand=WEAK)

    def boom(hole, community):
        raise RuntimeError("evaluator exploded")

    monkeypatch.setattr(engine.rules, "base_strength", boom)

    assert await engine.decide(player, preflop_state(to_call=0)) == Decision("fold")


@pytest.mark.asyncio
async def test_trusted_model_overrides_rules(make_player, stub_context):
    provider = FixedProvider(Decision("raise", 200))
    engine = DecisionEngine(stub_context(0.9, model_trust=1.0), provider)
    player = make_player("bot", is_ai=True, personality="conservative", hand=WEAK)

    decision = await engine.decide(player, preflop_state(to_call=10))

    assert decision == Decision("raise", 200)
    assert provider.features["hole_cards"] == WEAK
    assert provider.features["to_call"] == 10


@pytest.mark.parametrize("trust", [0.0, 0.3])
@pytest.mark.asyncio
async def test_low_trust_keeps_rule_decision(make_player, stub_context, trust):
    engine = DecisionEngine(stub_context(0.9, model_trust=trust), FixedProvider(Decision("raise", 200)))
    player = make_player("bot", is_ai=True, personality="conservative", hand=WEAK)
    assert await engine.decide(player, preflop_state(to_call=10)) == Decision("call")


@pytest.mark.asyncio
async def test_slow_model_falls_back_to_rules(make_player, stub_context):
    engine = DecisionEngine(stub_context(0.9, model_trust=1.0, decision_timeout_ms=10), SlowProvider())
    player = make_player("bot", is_ai=True, personality="conservative", hand=WEAK)

    decision = await asyncio.wait_for(engine.decide(player, preflop_state(to_call=10)), timeout=0.5)

    assert decision == Decision("call")


@pytest.mark.asyncio
async def test_failing_model_falls_back_to_rules(make_player, stub_context):
    engine = DecisionEngine(stub_context(0.9, model_trust=1.0), BrokenProvider())
    player = make_player("bot", is_ai=True, personality="conservative", hand=WEAK)
    assert await engine.decide(player, preflop_state(to_call=10)) == Decision("call")


class ScriptedProvider(StrategyProvider):
    def __init__(self, suggestion):
        self.suggestion = suggestion

    async def predict(self, features):
        return self.suggestion


@pytest.mark.parametrize(
    "suggestion",
    [
        Decision("raise", None),
        Decision("raise", "lots"),
        Decision("raise", -5),
        Decision("dance", 10),
        {"action": "raise", "amount": 50},
    ],
)
@pytest.mark.asyncio
async def test_bad_model_suggestion_falls_back_to_rules(make_player, stub_context, suggestion):
    board = ["Ks", "Qd", "9c"]
    rules_only = DecisionEngine(stub_context(0.0, model_trust=0.5))
    engine = DecisionEngine(stub_context(0.0, model_trust=0.5), ScriptedProvider(suggestion))
    player = make_player("bot", is_ai=True, personality="aggressive", hand=WEAK)

    expected = await rules_only.decide(player, flop_state(board))
    decision = await engine.decide(player, flop_state(board))

    assert expected.action == "raise"
    assert decision == expected


def test_validate_decision_normalises_amount():
    assert validate_decision(Decision("raise", "120")) == Decision("raise", 120)
    assert validate_decision(Decision("call")) == Decision("call", 0)
    with pytest.raises(StrategyError):
        validate_decision(Decision("raise", None))


@pytest.mark.asyncio
async def test_decide_accepts_public_state(make_player, stub_context, monkeypatch):
    engine = DecisionEngine(stub_context(0.0))
    player = make_player("bot", is_ai=True, personality="mathematician", hand=WEAK)
    seen = {}

    def odds(state):
        seen.update(state)
        return 0.9

    monkeypatch.setattr(engine.rules, "calculate_pot_odds", odds)
    public = {
        "community_cards": ["Ks", "Qd", "9c"],
        "current_bet": 20,
        "pot": 50,
        "current_phase": "flop",
        "players": [{"name": "bot", "round_bet": 5, "state": "active", "chips": 1000, "is_ai": True}],
    }

    assert await engine.decide(player, public) == Decision("fold")
    assert seen["to_call"] == 15
    assert seen["community"] == parse_cards(["Ks", "Qd", "9c"])


# Strategy provider ----------------------------------------------------

@pytest.mark.parametrize(
    "content, expected",
    [
        ('{"action": "raise", "amount": 120}', Decision("raise", 120)),
        ('Sure! {"action": "CALL", "amount": 0} good luck', Decision("call", 0)),
        ('{"action": "fold"}', Decision("fold", 0)),
        ("I will raise to 300", Decision("raise", 300)),
        ("check", Decision("call")),
        ("Fold this one", Decision("fold")),
    ],
)
def test_parse_decision(content, expected):
    assert parse_decision(content) == expected


@pytest.mark.parametrize(
    "content",
    ['{"action": "dance"}', '{"action": "raise", "amount": "lots"}', "{not json}", "raise big", "hmm"],
)
def test_parse_decision_rejects_nonsense(content):
    with pytest.raises(StrategyError):
        parse_decision(content)


def fake_client(content=None, error=None):
    async def create(**kwargs):
        if error:
            raise error
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


@pytest.mark.asyncio
async def test_openai_provider_parses_reply():
    provider = OpenAIStrategyProvider(fake_client('{"action": "raise", "amount": 75}'))
    features = {"hole_cards": WEAK, "community_cards": [], "to_call": 10, "hand_strength": 0.1, "pot_odds": 0.3}
    assert await provider.predict(features) == Decision("raise", 75)


@pytest.mark.asyncio
async def test_openai_provider_wraps_errors():
    with pytest.raises(StrategyError):
        await OpenAIStrategyProvider(fake_client(error=RuntimeError("503"))).predict({})
    with pytest.raises(StrategyError):
        await OpenAIStrategyProvider(fake_client("")).predict({})


def test_provider_from_env_without_configuration(monkeypatch):
    monkeypatch.delenv("AI_API_KEY", raising=False)
    monkeypatch.delenv("AI_API_BASE_URL", raising=False)
    monkeypatch.setattr("holdem.strategy_provider.load_dotenv", lambda *args, **kwargs: False)
    assert OpenAIStrategyProvider.from_env() is None
