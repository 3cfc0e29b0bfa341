"""Pytest configuration and shared fixtures."""

import pytest
from pathlib import Path

from itmd_app.config.defaults import Policy
from itmd_app.services import Services, make_services


SAMPLE_ITINERARY = """\
---
title: Kansai trip
timezone: Asia/Tokyo
currency: JPY
---

# Kansai trip

## 2024-03-01

> [08:00]-[09:15] flight NH21 :: HND - ITM
> - cost: JPY 23000
> - seat: 12A

> [pm] museum Kyoto National Museum^京都国立博物館 at Higashiyama

> [!NOTE] Bring cash
> Many temples do not take cards.

## 2024-03-02 @Europe/Paris

> [10:00] hotel Check in :: Le Marais
> - price: 120 EUR per night

> [20:00]-[06:00+1] train Nightjet from Paris to Vienna via Munich
> - cost: {2*45} EUR
"""


@pytest.fixture
def sample_itinerary() -> str:
    """Small itinerary touching headings, events, prices and alerts."""
    return SAMPLE_ITINERARY


@pytest.fixture
def default_policy() -> Policy:
    """Built-in parsing policy."""
    return Policy()


@pytest.fixture
def tokyo_services() -> Services:
    """Services with a Tokyo timezone and yen currency fallback."""
    return make_services(tz_fallback="Asia/Tokyo", currency_fallback="JPY")


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Directory containing an itmd.yaml with a policy and a rate table."""
    (tmp_path / "itmd.yaml").write_text(
        "policy:\n"
        "  amHour: 8\n"
        "  pmHour: 14\n"
        "  tzFallback: Europe/Berlin\n"
        "rates:\n"
        "  JPY: 150\n"
        "  EUR: 0.9\n",
        encoding="utf-8",
    )
    return tmp_path
