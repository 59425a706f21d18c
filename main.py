"""
Entry point for the Hold'em simulator.
Runs a session of AI-only hands and prints the results.
"""

import argparse
import asyncio
import logging

from holdem.ai import DecisionEngine
from holdem.config import GameConfig
from holdem.context import GameContext
from holdem.errors import PokerError
from holdem.game import Game, HandResult
from holdem.hand_evaluation import format_best_five
from holdem.player import PERSONALITIES, create_ai_players
from holdem.progression import ProgressionTracker
from holdem.strategy_provider import OpenAIStrategyProvider


def print_result(result: HandResult):
    descriptions = result.descriptions
    rank = descriptions.get(result.winners[0], result.hand_rank)
    payouts = ", ".join(f"{name} +${amount}" for name, amount in result.payouts.items())
    best = result.evaluations.get(result.winners[0])
    shown = f" [{format_best_five(best, symbols=True)}]" if best else ""
    print(f"Hand #{result.hand_number}: {', '.join(result.winners)} ({rank}){shown} | {payouts}")
    if result.unclaimed:
        print(f"  ${result.unclaimed} unclaimed, carried into the next hand")


async def main(player_count: int, hands: int, seed=None, use_model: bool = False):
    print("🃏 Starting Hold'em simulation")
    print("=" * 50)

    config = GameConfig.from_env()
    context = GameContext.create(config, seed=seed)
    provider = OpenAIStrategyProvider.from_env() if use_model else None

    players = await create_ai_players(player_count, chips=config.starting_chips,
                                      personalities=PERSONALITIES, rng=context.rng)
    for p in players:
        print(f"  {p.name}: {p.personality}, ${p.chips}")

    game = Game(players, context, DecisionEngine(context, provider))
    tracker = ProgressionTracker(players[0].name)
    game.add_hand_complete_listener(print_result)
    game.add_hand_complete_listener(tracker)

    for _ in range(hands):
        if sum(1 for p in players if p.chips > 0) < 2:
            print("Only one player has chips left")
            break
        await game.play_hand()

    print("=" * 50)
    for p in sorted(players, key=lambda p: p.chips, reverse=True):
        print(f"  {p.name} ({p.personality}): ${p.chips}")
    print(f"📈 {tracker.player_name}: level {tracker.level}, streak {tracker.streak}, coins {tracker.coins}")
    cache = context.cache
    print(f"🗂️  Strength cache: {cache.hits} hits, {cache.misses} misses, {cache.clears} clears")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run an AI-only Texas Hold'em session")
    parser.add_argument("--players", default=4, type=int, help="Number of AI players")
    parser.add_argument("--hands", default=10, type=int, help="Number of hands to play")
    parser.add_argument("--seed", default=None, type=int, help="Seed for a repeatable session")
    parser.add_argument("--model", action="store_true", help="Consult the AI_API_* strategy endpoint")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.debug:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        asyncio.run(main(args.players, args.hands, args.seed, args.model))
    except KeyboardInterrupt:
        print("\n👋 Simulation stopped")
    except PokerError as e:
        print(f"❌ Error: {e}")
