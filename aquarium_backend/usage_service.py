"""App usage service.

Wraps a platform ``UsageSource`` (the OS usage-stats bridge) with caching,
restricted-app filtering and periodic polling. Samples are pushed to a
callback; any failure is logged and that poll pushes nothing, so the
simulation carries on as if no usage was observed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Set, Tuple

from aquarium_core.clock import Clock
from aquarium_core.config.usage import (
    DEFAULT_USAGE_TIME_RANGE,
    INSTALLED_APPS_CACHE_TTL,
    OWN_PACKAGE_NAME,
    PERMISSION_CACHE_TTL,
    SYSTEM_PACKAGE_PREFIXES,
    USAGE_MONITORING_INTERVAL,
    USAGE_STATS_CACHE_TTL,
)
from aquarium_core.exceptions import AppError, ErrorCode, UsageSourceError
from aquarium_core.models import AppRestriction, AppUsageData
from aquarium_core.pets import is_valid_package_name
from aquarium_core.result import Err, Ok, Result
from aquarium_core.scheduling import Scheduler, TimerHandle
from aquarium_core.usage import UsageAlerts, classify_usage, overall_usage_ratio

logger = logging.getLogger(__name__)

UsageCallback = Callable[[List[AppUsageData]], None]


@dataclass(frozen=True)
class RawUsageStat:
    """One entry as reported by the platform bridge (milliseconds)."""

    package_name: str
    total_time_in_foreground_ms: int
    last_time_used_ms: int  # epoch ms


@dataclass(frozen=True)
class InstalledApp:
    package_name: str
    app_name: str
    icon: str = ""  # base64


class UsageSource(Protocol):
    """Platform usage-stats bridge.

    Implementations may raise ``UsageSourceError`` (or any exception); the
    service converts failures into ``Err`` results.
    """

    async def has_permission(self) -> bool:
        ...

    async def request_permission(self) -> bool:
        ...

    async def get_usage_stats(self, time_range: timedelta) -> List[RawUsageStat]:
        ...

    async def get_installed_apps(self) -> List[InstalledApp]:
        ...


class InMemoryUsageSource:
    """Usage source fed by hand, for platforms without a usage-stats API."""

    def __init__(self, permission: bool = True) -> None:
        self.permission = permission
        self.stats: List[RawUsageStat] = []
        self.apps: List[InstalledApp] = []

    async def has_permission(self) -> bool:
        return self.permission

    async def request_permission(self) -> bool:
        return self.permission

    async def get_usage_stats(self, time_range: timedelta) -> List[RawUsageStat]:
        if not self.permission:
            raise UsageSourceError("Usage access not granted")
        return list(self.stats)

    async def get_installed_apps(self) -> List[InstalledApp]:
        return list(self.apps)


def is_user_app(package_name: str) -> bool:
    return package_name != OWN_PACKAGE_NAME and not package_name.startswith(SYSTEM_PACKAGE_PREFIXES)


def usage_from_stat(stat: RawUsageStat, app_name: str = "") -> AppUsageData:
    """Convert a bridge entry. The bridge reports today's total as the daily figure."""
    usage = timedelta(milliseconds=stat.total_time_in_foreground_ms)
    return AppUsageData(
        app_id=stat.package_name,
        package_name=stat.package_name,
        daily_usage=usage,
        last_used=datetime.fromtimestamp(stat.last_time_used_ms / 1000),
        weekly_usage=usage,
        app_name=app_name,
    )


class AppUsageService:
    """Caching, filtering and polling front for a ``UsageSource``."""

    def __init__(
        self,
        source: Optional[UsageSource],
        clock: Clock,
        scheduler: Scheduler,
        poll_interval: float = USAGE_MONITORING_INTERVAL,
    ) -> None:
        self._source = source
        self._clock = clock
        self._scheduler = scheduler
        self._poll_interval = poll_interval
        self._restricted: List[AppRestriction] = []
        self._callback: Optional[UsageCallback] = None
        self._timer: Optional[TimerHandle] = None
        self._pending: Set[asyncio.Task] = set()

        self._permission_cache: Optional[Tuple[bool, float]] = None
        self._installed_cache: Optional[Tuple[List[InstalledApp], float]] = None
        self._stats_cache: Optional[Tuple[List[AppUsageData], float, timedelta]] = None

    def _unsupported(self) -> Err[AppError]:
        return Err(AppError(ErrorCode.PLATFORM_NOT_SUPPORTED, "No usage source on this platform"))

    def _fresh(self, stamp: float, ttl: float) -> bool:
        return self._clock.monotonic() - stamp < ttl

    # ------------------------------------------------------------------
    # Permission
    # ------------------------------------------------------------------

    async def has_permission(self) -> bool:
        if self._source is None:
            logger.warning("Usage stats are not supported on this platform")
            return False
        if self._permission_cache and self._fresh(self._permission_cache[1], PERMISSION_CACHE_TTL):
            return self._permission_cache[0]
        try:
            granted = await self._source.has_permission()
        except Exception as e:
            logger.error(f"Permission check failed: {e}", exc_info=True)
            self._permission_cache = None
            return False
        self._permission_cache = (granted, self._clock.monotonic())
        logger.info(f"Usage stats permission: {granted}")
        return granted

    async def request_permission(self) -> bool:
        if self._source is None:
            return False
        try:
            granted = await self._source.request_permission()
        except Exception as e:
            logger.error(f"Permission request failed: {e}", exc_info=True)
            return False
        self._permission_cache = (granted, self._clock.monotonic())
        if granted:
            logger.info("Usage stats permission granted")
        else:
            logger.warning("Usage stats permission denied")
        return granted

    async def ensure_permission(self) -> bool:
        return await self.has_permission() or await self.request_permission()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_installed_apps(self) -> Result[List[InstalledApp], AppError]:
        """User-installed apps, excluding system packages and this app."""
        if self._source is None:
            return self._unsupported()
        if self._installed_cache and self._fresh(self._installed_cache[1], INSTALLED_APPS_CACHE_TTL):
            return Ok(list(self._installed_cache[0]))
        try:
            apps = await self._source.get_installed_apps()
        except Exception as e:
            logger.error(f"Installed apps query failed: {e}", exc_info=True)
            return Err(AppError(ErrorCode.UNKNOWN_ERROR, f"Installed apps query failed: {e}"))
        user_apps = [a for a in apps if is_user_app(a.package_name)]
        self._installed_cache = (user_apps, self._clock.monotonic())
        logger.info(f"Found {len(user_apps)} user apps")
        return Ok(list(user_apps))

    async def get_usage_stats(
        self, time_range: timedelta = DEFAULT_USAGE_TIME_RANGE
    ) -> Result[List[AppUsageData], AppError]:
        """Usage per app over ``time_range``, most used first."""
        if self._source is None:
            return self._unsupported()
        if (
            self._stats_cache
            and self._stats_cache[2] == time_range
            and self._fresh(self._stats_cache[1], USAGE_STATS_CACHE_TTL)
        ):
            return Ok(list(self._stats_cache[0]))

        if not await self.has_permission():
            return Err(AppError(ErrorCode.PERMISSION_DENIED, "Usage stats permission is required"))

        try:
            raw_stats = await self._source.get_usage_stats(time_range)
        except Exception as e:
            logger.error(f"Usage stats query failed: {e}", exc_info=True)
            self._stats_cache = None
            return Err(AppError(ErrorCode.UNKNOWN_ERROR, f"Usage stats query failed: {e}"))

        names = self._known_app_names()
        usage: List[AppUsageData] = []
        for stat in raw_stats:
            if not is_valid_package_name(stat.package_name) or stat.total_time_in_foreground_ms < 0:
                logger.warning(f"Skipping malformed usage sample: {stat}")
                continue
            if stat.total_time_in_foreground_ms > 0:
                usage.append(usage_from_stat(stat, names.get(stat.package_name, "")))
        usage.sort(key=lambda u: u.daily_usage, reverse=True)

        self._stats_cache = (usage, self._clock.monotonic(), time_range)
        logger.info(f"Fetched usage for {len(usage)} apps")
        return Ok(list(usage))

    def _known_app_names(self) -> Dict[str, str]:
        names = {r.package_name: r.app_name for r in self._restricted if r.app_name}
        if self._installed_cache:
            names.update({a.package_name: a.app_name for a in self._installed_cache[0]})
        return names

    async def get_restricted_app_usage(self) -> Result[List[AppUsageData], AppError]:
        if not self._restricted:
            return Ok([])
        result = await self.get_usage_stats()
        if result.is_err():
            return result
        restricted = {r.package_name for r in self._restricted}
        return Ok([u for u in result.unwrap() if u.package_name in restricted])

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    async def start_monitoring(self, restrictions: Sequence[AppRestriction], callback: UsageCallback) -> None:
        """Poll restricted-app usage now and then every poll interval.

        Must be awaited from within a running event loop. Restarting tears
        down the previous session first.
        """
        if self.is_monitoring():
            self.stop_monitoring()

        self._restricted = list(restrictions)
        self._callback = callback
        logger.info(f"Monitoring usage of {len(self._restricted)} apps")
        await self.poll_once()
        self._timer = self._scheduler.call_every(self._poll_interval, self._schedule_poll, name="usage_poll")

    def _schedule_poll(self) -> None:
        task = asyncio.get_running_loop().create_task(self.poll_once())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def poll_once(self) -> bool:
        """Fetch restricted-app usage and push it to the callback.

        A callback that raises is logged and the tick counts as no change.

        Returns:
            True if samples were pushed and handled
        """
        if self._callback is None:
            return False
        result = await self.get_restricted_app_usage()
        if result.is_err():
            logger.error(f"Usage update failed: {result.error}")
            return False
        try:
            self._callback(result.unwrap())
        except Exception as e:
            logger.error(f"Usage callback failed: {e}", exc_info=True)
            return False
        return True

    def stop_monitoring(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._callback is not None:
            logger.info("Usage monitoring stopped")
        self._callback = None
        self._restricted = []

    def is_monitoring(self) -> bool:
        return self._timer is not None

    def update_restrictions(self, restrictions: Sequence[AppRestriction]) -> None:
        """Change the monitored apps without restarting the session."""
        self._restricted = list(restrictions)

    @property
    def restricted_apps(self) -> Sequence[AppRestriction]:
        return tuple(self._restricted)

    # ------------------------------------------------------------------
    # Limits
    # ------------------------------------------------------------------

    def check_time_limit(self, usage: Sequence[AppUsageData]) -> UsageAlerts:
        return classify_usage(usage, self._restricted)

    def usage_ratio(self, usage: Sequence[AppUsageData]) -> float:
        return overall_usage_ratio(usage, self._restricted)
