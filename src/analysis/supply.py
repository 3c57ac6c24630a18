"""
Circulating supply models for WhenKas.

Two issuance schedules are modelled:
- Bitcoin: fixed block reward halving every 210,000 blocks of 10 minutes
- Kaspa: time-based emission in three phases (bootstrap, constant rate,
  deflationary decay)

In price mode the ratio of the two supplies gives the KAS price (in BTC) at
which Kaspa's market cap equals Bitcoin's.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

import numpy as np
import pandas as pd

from config import (
    BITCOIN_BLOCK_INTERVAL_SECONDS,
    BITCOIN_GENESIS_DATE,
    BITCOIN_HALVING_INTERVAL,
    BITCOIN_INITIAL_REWARD,
    KASPA_BOOTSTRAP_END_DATE,
    KASPA_DECAY_PERIOD_SECONDS,
    KASPA_DEFLATIONARY_DECAY,
    KASPA_DEFLATIONARY_INITIAL_REWARD,
    KASPA_DEFLATIONARY_START_DATE,
    KASPA_GENESIS_DATE,
    KASPA_PRE_DEFLATIONARY_REWARD,
    SUPPLY_PARITY_EPSILON,
)


@dataclass(frozen=True)
class HalvingSchedule:
    """Block-based issuance with a reward that halves every epoch."""

    genesis: datetime
    block_interval_seconds: float
    halving_interval: int
    initial_reward: float

    def blocks_mined(self, at: datetime) -> int:
        """Whole blocks produced between genesis and `at`."""
        elapsed = (at - self.genesis).total_seconds()
        return math.floor(elapsed / self.block_interval_seconds)

    def supply_at(self, at: datetime) -> float:
        """
        Total coins issued by `at`.

        Args:
            at: Query instant (naive UTC)

        Returns:
            Supply in whole coins (0 before genesis)
        """
        blocks_mined = self.blocks_mined(at)

        supply = 0.0
        reward = self.initial_reward
        processed = 0

        while processed < blocks_mined:
            blocks_this_epoch = min(self.halving_interval, blocks_mined - processed)
            supply += blocks_this_epoch * reward
            processed += blocks_this_epoch
            reward /= 2

        return supply


@dataclass(frozen=True)
class EmissionSchedule:
    """
    Per-second emission in three phases.

    (a) genesis -> bootstrap_end at the pre-deflationary rate
    (b) bootstrap_end -> deflationary_start at the same rate
    (c) deflationary_start onwards at a reward that is multiplied by
        `decay` after every `decay_period_seconds`
    """

    genesis: datetime
    bootstrap_end: datetime
    deflationary_start: datetime
    pre_deflationary_reward: float
    deflationary_initial_reward: float
    decay: float
    decay_period_seconds: float

    def supply_at(self, at: datetime) -> float:
        """
        Total coins emitted by `at`.

        Args:
            at: Query instant (naive UTC)

        Returns:
            Supply in whole coins (negative before genesis)
        """
        rate = self.pre_deflationary_reward

        if at <= self.bootstrap_end:
            return rate * (at - self.genesis).total_seconds()

        supply = rate * (self.bootstrap_end - self.genesis).total_seconds()

        if at <= self.deflationary_start:
            return supply + rate * (at - self.bootstrap_end).total_seconds()

        supply += rate * (self.deflationary_start - self.bootstrap_end).total_seconds()

        remaining = (at - self.deflationary_start).total_seconds()
        reward = self.deflationary_initial_reward
        elapsed = 0.0

        while elapsed < remaining:
            seconds_this_period = min(self.decay_period_seconds, remaining - elapsed)
            supply += reward * seconds_this_period
            reward *= self.decay
            elapsed += seconds_this_period

        return supply


BITCOIN_SCHEDULE = HalvingSchedule(
    genesis=BITCOIN_GENESIS_DATE,
    block_interval_seconds=BITCOIN_BLOCK_INTERVAL_SECONDS,
    halving_interval=BITCOIN_HALVING_INTERVAL,
    initial_reward=BITCOIN_INITIAL_REWARD,
)

KASPA_SCHEDULE = EmissionSchedule(
    genesis=KASPA_GENESIS_DATE,
    bootstrap_end=KASPA_BOOTSTRAP_END_DATE,
    deflationary_start=KASPA_DEFLATIONARY_START_DATE,
    pre_deflationary_reward=KASPA_PRE_DEFLATIONARY_REWARD,
    deflationary_initial_reward=KASPA_DEFLATIONARY_INITIAL_REWARD,
    decay=KASPA_DEFLATIONARY_DECAY,
    decay_period_seconds=KASPA_DECAY_PERIOD_SECONDS,
)

# Comparison assets with a known issuance schedule
COMPARISON_SCHEDULES: dict[str, HalvingSchedule | EmissionSchedule] = {
    "btc": BITCOIN_SCHEDULE,
}


def bitcoin_supply(at: datetime) -> float:
    """Bitcoin circulating supply at `at`."""
    return BITCOIN_SCHEDULE.supply_at(at)


def kaspa_supply(at: datetime) -> float:
    """Kaspa circulating supply at `at`."""
    return KASPA_SCHEDULE.supply_at(at)


def supply_parity_curve(
    max_day: int,
    asset: str = "btc",
    subject: EmissionSchedule = KASPA_SCHEDULE,
) -> pd.Series:
    """
    Price (in units of `asset`) at which the subject's market cap equals the asset's.

    For each whole day offset since the subject's genesis the value is
    asset_supply / subject_supply, plus a small epsilon. Day 0 has no subject
    supply and evaluates to infinity.

    Args:
        max_day: Last day offset to evaluate (inclusive)
        asset: Comparison asset symbol
        subject: Emission schedule of the subject asset

    Returns:
        Series indexed by integer day offset 0..max_day
    """
    if asset not in COMPARISON_SCHEDULES:
        raise ValueError(f"No supply model for asset: {asset}")
    comparison = COMPARISON_SCHEDULES[asset]

    days = np.arange(0, max_day + 1)
    dates = [subject.genesis + timedelta(days=int(day)) for day in days]

    comparison_supply = np.array([comparison.supply_at(dt) for dt in dates], dtype=float)
    subject_supply = np.array([subject.supply_at(dt) for dt in dates], dtype=float)

    with np.errstate(divide="ignore", invalid="ignore"):
        parity = comparison_supply / subject_supply + SUPPLY_PARITY_EPSILON

    return pd.Series(parity, index=pd.Index(days, name="day"), name="supply_parity")
