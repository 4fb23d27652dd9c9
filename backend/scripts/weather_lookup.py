"""Look up a place and print its weather, forecast and nearby attractions.

Usage:
    python backend/scripts/weather_lookup.py "Paris"
    python backend/scripts/weather_lookup.py            # most recent / default place
    python backend/scripts/weather_lookup.py --list     # saved places only

Uses the same database and app storage as the API, so places looked up here
show up in the dashboard's visited list.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv

load_dotenv(ROOT / ".env")

from db import init_db
from domain.models import AppState
from services.dashboard import get_default_orchestrator

LOG = logging.getLogger("weather_lookup")


def format_state(state: AppState) -> str:
    lines = [f"Place: {state.active_place_name or 'Unknown'}"]
    if state.current:
        c = state.current
        lines.append(
            f"Now: {c.temperature:.1f}° {c.summary}, {c.humidity}% humidity, "
            f"{c.pressure} hPa, wind {c.wind_speed:.1f} m/s"
        )
    if state.forecast:
        lines.append("Forecast:")
        for day in state.forecast[:8]:
            lines.append(
                f"  {day.date:%a %d %b}  {day.temperature_min:.0f}° / {day.temperature_max:.0f}°  {day.summary}"
            )
    if state.pois:
        lines.append("Nearby:")
        for poi in state.pois:
            lines.append(f"  - {poi.name} ({poi.latitude:.4f}, {poi.longitude:.4f})")
    if state.alert:
        label = "Error" if state.alert.is_error else "Note"
        lines.append(f"{label}: {state.alert.message}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("place", nargs="?", help="place name to search for")
    parser.add_argument("--list", action="store_true", help="list saved places and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    init_db()
    orchestrator = get_default_orchestrator()

    if args.list:
        orchestrator.store.bootstrap_if_empty()
        for place in orchestrator.store.load_all():
            print(f"{place.name}\t{place.latitude:.4f}\t{place.longitude:.4f}\t{place.last_used_at:%Y-%m-%d %H:%M}")
        return 0

    if args.place:
        orchestrator.store.bootstrap_if_empty()
        orchestrator.store.load_all()
        orchestrator.submit_query(args.place)
    else:
        orchestrator.startup()

    state = orchestrator.state
    print(format_state(state))
    return 1 if state.alert is not None and state.alert.is_error else 0


if __name__ == "__main__":
    sys.exit(main())
