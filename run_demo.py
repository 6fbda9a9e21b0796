"""
End-to-end demo of the health-signal intelligence pipeline.

This script walks through:
1. Configuration loading and validation
2. Deterministic readiness for several subject scenarios
3. Safety gating of a subject in distress
4. Narrative synthesis (or the offline fallback when no key is configured)
5. Memory consolidation and the weekly briefing

Run with: uv run python run_demo.py
"""

import asyncio
from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.storage import InMemoryHealthStore
from healthsignal.config import get_config, print_config_summary, validate_config
from healthsignal.domain.models import HealthLog
from healthsignal.observability import configure_logging
from healthsignal.services import IntegratedIntelligenceService

console = Console()

# (sleep, stress, energy, mood) per day, oldest first
SCENARIOS: dict[str, list[tuple[int, int, int, int]]] = {
    "athlete": [(9, 2, 8, 8), (10, 1, 9, 8), (9, 1, 10, 9), (10, 0, 10, 9)],
    "steady": [(7, 4, 6, 6), (8, 2, 5, 7), (7, 3, 6, 7), (9, 2, 8, 7)],
    "overloaded": [(5, 8, 4, 5), (4, 8, 4, 4), (6, 9, 5, 4)],
    "distressed": [(6, 6, 5, 5), (4, 8, 3, 4), (3, 10, 2, 1)],
    "week_of_logs": [
        (7, 3, 6, 7),
        (6, 4, 5, 6),
        (8, 2, 7, 8),
        (7, 3, 7, 7),
        (8, 3, 6, 7),
        (9, 2, 8, 8),
        (8, 2, 7, 8),
        (8, 3, 7, 7),
    ],
}


async def seed_store(store: InMemoryHealthStore) -> None:
    start = datetime.now(UTC) - timedelta(days=14)
    for subject, days in SCENARIOS.items():
        for index, (sleep, stress, energy, mood) in enumerate(days):
            await store.add_log(
                HealthLog(
                    id=f"{subject}-{index}",
                    user_id=subject,
                    date=start + timedelta(days=index),
                    mood=mood,
                    energy=energy,
                    sleep_quality=sleep,
                    stress=stress,
                    notes="",
                )
            )


def demo_configuration() -> bool:
    """Load and print configuration."""

    console.print(Panel("🔧 Configuration", style="blue"))

    try:
        validate_config()
        config = get_config()
        configure_logging(config.logging)

        if not config.narrative.has_credentials:
            console.print(
                "⚠️  GEMINI_API_KEY not set: insights will use the offline fallback",
                style="yellow",
            )
        print_config_summary()
        return True

    except Exception as e:
        console.print(f"❌ Configuration failed: {e}", style="red")
        return False


async def demo_daily_intelligence(service: IntegratedIntelligenceService) -> bool:
    """Run the daily pipeline for every scenario, plus a subject with no history."""

    console.print(Panel("🧠 Daily Intelligence", style="blue"))

    table = Table(title="Daily Results")
    table.add_column("Subject", style="cyan")
    table.add_column("Readiness", style="green")
    table.add_column("State", style="magenta")
    table.add_column("Insight", style="white")
    table.add_column("Source", style="yellow")
    table.add_column("Latency", style="white")

    try:
        for subject in [*SCENARIOS, "newcomer"]:
            result = await service.refresh_subject(subject)
            table.add_row(
                subject,
                str(result.readiness.score),
                result.readiness.state.value,
                result.insight.title,
                result.audit.model_used,
                f"{result.latency_ms}ms",
            )

        console.print(table)
        return True

    except Exception as e:
        console.print(f"❌ Daily intelligence failed: {e}", style="red")
        return False


async def demo_long_term_memory(service: IntegratedIntelligenceService) -> bool:
    """Consolidate memory and produce a weekly briefing for the longest history."""

    console.print(Panel("📚 Memory & Weekly Briefing", style="blue"))

    try:
        node = await service.consolidate_memory("week_of_logs")
        if node:
            console.print(f"✅ Memory node {node.id} covers {len(node.lineage_ids)} logs")
            console.print(f"  Summary: {node.summary}")
        else:
            console.print("No memory node created (narrative unavailable)", style="yellow")

        briefing = await service.generate_weekly_briefing("week_of_logs")
        if briefing:
            console.print(f"✅ {briefing.week_label}: {briefing.biological_trajectory}")
            console.print(f"  {briefing.narrative_summary}")
        else:
            console.print("No weekly briefing produced", style="yellow")

        suppressed = await service.generate_weekly_briefing("distressed")
        console.print(
            "✅ Briefing suppressed for distressed subject"
            if suppressed is None
            else "❌ Briefing produced during distress",
            style="green" if suppressed is None else "red",
        )
        return suppressed is None

    except Exception as e:
        console.print(f"❌ Long-term memory demo failed: {e}", style="red")
        return False


async def run_demo() -> None:
    console.print(Panel("🩺 Health Signal - Pipeline Demo", style="bold blue"))

    if not demo_configuration():
        return

    store = InMemoryHealthStore()
    await seed_store(store)
    service = IntegratedIntelligenceService(store)

    steps = [
        ("Daily Intelligence", demo_daily_intelligence),
        ("Long-Term Memory", demo_long_term_memory),
    ]

    results = []
    for step_name, step in steps:
        console.print(f"\n{'=' * 60}")
        results.append((step_name, await step(service)))

    summary_table = Table()
    summary_table.add_column("Step", style="cyan")
    summary_table.add_column("Result", style="white")
    for step_name, ok in results:
        summary_table.add_row(step_name, "✅ OK" if ok else "❌ FAILED")

    console.print(f"\n{'=' * 60}")
    console.print(summary_table)


if __name__ == "__main__":
    try:
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        console.print("\n👋 Demo stopped by user", style="yellow")
