"""Trip statistics models."""

from __future__ import annotations

from pyconnecteddrive.models._base import CdBaseModel


class LastTrip(CdBaseModel):
    date: str = ""
    duration: float | None = None
    total_distance: float | None = None
    avg_electric_consumption: float | None = None
    avg_combined_consumption: float | None = None
    avg_recuperation: float | None = None
    electric_distance_ratio: float | None = None


class LastTripContainer(CdBaseModel):
    last_trip: LastTrip | None = None


class StatisticValue(CdBaseModel):
    """A lifetime statistic with the user's figures."""

    user_average: float | None = None
    user_total: float | None = None
    user_high: float | None = None
    user_current_charge_cycle: float | None = None


class AllTrips(CdBaseModel):
    reset_date: str = ""
    total_electric_distance: StatisticValue | None = None
    avg_electric_consumption: StatisticValue | None = None
    avg_combined_consumption: StatisticValue | None = None
    avg_recuperation: StatisticValue | None = None
    chargecycle_range: StatisticValue | None = None


class AllTripsContainer(CdBaseModel):
    all_trips: AllTrips | None = None
