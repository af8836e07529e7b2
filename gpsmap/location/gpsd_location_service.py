"""Location fixes from a GPS receiver managed by gpsd.

Queries gpsd through ``gpspipe`` and turns its TPV reports into samples.
"""

import json
import subprocess
import time
from datetime import datetime
from typing import List, Optional

from gpsmap.location.models import AccuracyMode, LocationSample, UpdateConfig
from gpsmap.location.platform_service import PollingLocationService
from gpsmap.logging import GPSMAP_LOGGER

# gpsd fix modes
FIX_MODE_2D = 2
FIX_MODE_3D = 3


def _horizontal_accuracy(report: dict) -> float:
    """Horizontal error estimate in meters (95% confidence), 0.0 if gpsd gives none."""
    if report.get("eph") is not None:
        return float(report["eph"])
    errors = [float(report[key]) for key in ("epx", "epy") if report.get(key) is not None]
    return max(errors) if errors else 0.0


def _report_time(report: dict) -> float:
    value = report.get("time")
    if not value:
        return time.time()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except (TypeError, ValueError):
        return time.time()


def parse_gpsd_reports(output: str, mode: AccuracyMode) -> List[LocationSample]:
    """
    Parse ``gpspipe -w`` output into samples, in report order.

    High accuracy only accepts 3D fixes; balanced power also accepts 2D
    fixes. Altitude is only reported for 3D fixes.

    Args:
        output: Newline separated gpsd JSON reports
        mode: Accuracy mode the reports were requested for

    Returns:
        One sample per usable TPV report.
    """
    min_fix_mode = FIX_MODE_3D if mode is AccuracyMode.HIGH_ACCURACY else FIX_MODE_2D
    samples = []

    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            report = json.loads(line)
        except json.JSONDecodeError:
            continue

        if report.get("class") != "TPV":
            continue
        fix_mode = report.get("mode", 0)
        if fix_mode < min_fix_mode:
            continue
        if report.get("lat") is None or report.get("lon") is None:
            continue

        altitude = None
        if fix_mode >= FIX_MODE_3D:
            altitude = report.get("altMSL", report.get("alt"))

        samples.append(
            LocationSample(
                latitude=float(report["lat"]),
                longitude=float(report["lon"]),
                accuracy=_horizontal_accuracy(report),
                altitude=float(altitude) if altitude is not None else None,
                speed=float(report["speed"]) if report.get("speed") is not None else None,
                timestamp=_report_time(report),
            )
        )

    return samples


class GpsdLocationService(PollingLocationService):
    """Platform location service backed by gpsd."""

    # Reports requested per read; more reports means a better chance of a 3D fix
    HIGH_ACCURACY_REPORTS = 10
    BALANCED_POWER_REPORTS = 4
    QUERY_TIMEOUT_SECONDS = 5

    def is_available(self) -> bool:
        """
        Check if gpsd can be queried (gpspipe command exists).

        Returns:
            True if gpspipe command is available, False otherwise.
        """
        try:
            result = subprocess.run(
                ["which", "gpspipe"],
                capture_output=True,
                timeout=2,
            )
            return result.returncode == 0
        except (OSError, subprocess.SubprocessError):
            return False

    def _read_fixes(self, config: UpdateConfig) -> List[LocationSample]:
        return self._query_gpsd(config.accuracy_mode)

    def _read_last_known(self) -> Optional[LocationSample]:
        cached = self.get_cached_fix()
        if cached is not None:
            return cached

        # gpsd keeps the receiver's latest report, so one short read is enough
        fixes = self._query_gpsd(AccuracyMode.BALANCED_POWER)
        if not fixes:
            return None
        self._remember(fixes[-1])
        return fixes[-1]

    def _query_gpsd(self, mode: AccuracyMode) -> List[LocationSample]:
        if mode is AccuracyMode.HIGH_ACCURACY:
            count = self.HIGH_ACCURACY_REPORTS
        else:
            count = self.BALANCED_POWER_REPORTS

        try:
            result = subprocess.run(
                ["gpspipe", "-w", "-n", str(count)],
                capture_output=True,
                timeout=self.QUERY_TIMEOUT_SECONDS,
                text=True,
            )
        except (FileNotFoundError, OSError, subprocess.TimeoutExpired) as e:
            # gpspipe not installed or gpsd not answering
            GPSMAP_LOGGER.debug(f"Could not query gpsd: {e}")
            return []

        if result.returncode != 0:
            GPSMAP_LOGGER.debug(f"gpspipe exited with {result.returncode}")
            return []

        fixes = parse_gpsd_reports(result.stdout, mode)
        if fixes:
            latest = fixes[-1]
            GPSMAP_LOGGER.debug(
                f"gpsd fix: lat={latest.latitude:.6f}°, lon={latest.longitude:.6f}°, ±{latest.accuracy:.1f}m "
                f"({len(fixes)} report(s))"
            )
        return fixes
