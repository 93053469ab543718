"""
GeoAttend CLI entrypoint.

This CLI is intended for quick local checks and for driving the attendance
simulator without the dashboard. Distance math is delegated to
`geoattend.core.geo`; backend calls go through `geoattend.backend.hr_client`.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

import httpx

from geoattend.attendance.checkin import CheckInService
from geoattend.backend.hr_client import HrApiError, build_client
from geoattend.config.settings import get_settings
from geoattend.core.geo import classify_within_radius, coerce_geo_point, compute_distance_meters, format_distance
from geoattend.core.logging import configure_logging
from geoattend.core.time import parse_date
from geoattend.tracking.heatmap import LocationPoint, bounds, valid_points

logger = logging.getLogger(__name__)


def _dump(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _cmd_distance(args: argparse.Namespace) -> int:
    """Handle the `distance` subcommand (offline)."""
    geofence = get_settings().geofence
    origin = coerce_geo_point(*args.origin)
    target = coerce_geo_point(*args.target)
    d = compute_distance_meters(origin, target)
    label = format_distance(
        d,
        meters_label=geofence.meters_label,
        kilometers_label=geofence.kilometers_label,
        decimals=geofence.kilometers_decimals,
    )
    within = classify_within_radius(d, float(args.radius)) if args.radius is not None else None

    if args.json:
        _dump({"distance_m": d, "within_radius": within, "distance_label": label})
        return 0

    line = f"Distance: {label} ({d:.1f} m)"
    if within is not None:
        line += f"  {'within' if within else 'outside'} radius {float(args.radius):g} m"
    print(line)
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    """Handle `check-in` / `check-out`."""
    settings = get_settings()
    service = CheckInService(build_client(settings), settings)

    location_name = args.location_name
    if args.simulate:
        loc = service.simulated_location()
        lat, lon = loc.lat, loc.lon
        location_name = location_name or loc.name
    else:
        if args.lat is None or args.lon is None:
            raise ValueError("--lat and --lon are required unless --simulate is given")
        lat, lon = args.lat, args.lon

    submit = service.check_in if args.action == "check_in" else service.check_out
    result = submit(args.employee, lat, lon, location_name=location_name, notes=args.notes)

    if args.json:
        _dump(result.model_dump(mode="json"))
        return 0

    v = result.verification
    print(f"{args.action.replace('_', '-')} submitted for employee {result.employee_id}")
    if v.status == "undetermined":
        print(f"  geofence: undetermined ({v.reason})" + (f", distance {v.distance_label}" if v.distance_label else ""))
    else:
        print(f"  geofence: {v.status} {v.branch_name or 'branch'} ({v.distance_label}, radius {v.radius_m:g} m)")
    message = result.response.get("message") or result.response.get("msg")
    if message:
        print(f"  backend: {message}")
    return 0


def _cmd_status(args: argparse.Namespace) -> int:
    settings = get_settings()
    service = CheckInService(build_client(settings), settings)
    status = service.status(args.employee)
    if args.json:
        _dump(status.model_dump(mode="json"))
        return 0
    print(f"Employee {args.employee}: {status.status or 'unknown'}")
    if status.check_in_time:
        print(f"  checked in:  {status.check_in_time}")
    if status.check_out_time:
        print(f"  checked out: {status.check_out_time}")
    return 0


def _cmd_heatmap(args: argparse.Namespace) -> int:
    """Summarize one day of location history (all employees or one)."""
    settings = get_settings()
    client = build_client(settings)
    day = parse_date(args.date, settings.app.timezone).isoformat()
    if args.employee is None:
        raw = client.location_analytics(date=day)
    else:
        raw = client.location_history(args.employee, date=day)
    points = [LocationPoint.model_validate(r) for r in raw if isinstance(r, dict)]
    usable = valid_points(points)
    print(f"{day}: {len(usable)} usable of {len(points)} recorded locations")
    extent = bounds(usable)
    if extent:
        print(
            "  bounds: S {south:.5f} W {west:.5f} N {north:.5f} E {east:.5f}".format(**extent)
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the GeoAttend CLI."""
    parser = argparse.ArgumentParser(prog="geoattend")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging, including HR backend requests"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    dist = sub.add_parser("distance", help="Great-circle distance between two points (no backend needed).")
    dist.add_argument("--from", dest="origin", nargs=2, metavar=("LAT", "LON"), required=True)
    dist.add_argument("--to", dest="target", nargs=2, metavar=("LAT", "LON"), required=True)
    dist.add_argument("--radius", type=float, default=None, help="Radius in meters (boundary inclusive)")
    dist.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    dist.set_defaults(func=_cmd_distance)

    for name, action in [("check-in", "check_in"), ("check-out", "check_out")]:
        p = sub.add_parser(name, help=f"Submit a verified {name} to the HR backend.")
        p.add_argument("--employee", required=True, help="Employee id")
        p.add_argument("--lat", default=None)
        p.add_argument("--lon", default=None)
        p.add_argument("--simulate", action="store_true", help="Use a random configured sample location")
        p.add_argument("--location-name", dest="location_name", default=None)
        p.add_argument("--notes", default="")
        p.add_argument("--json", action="store_true", help="Output machine-readable JSON")
        p.set_defaults(func=_cmd_check, action=action)

    st = sub.add_parser("status", help="Today's attendance status for an employee.")
    st.add_argument("--employee", required=True)
    st.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    st.set_defaults(func=_cmd_status)

    hm = sub.add_parser("heatmap", help="Summarize a day of recorded locations.")
    hm.add_argument("--date", default=None, help="YYYY-MM-DD (default: today)")
    hm.add_argument("--employee", type=int, default=None)
    hm.set_defaults(func=_cmd_heatmap)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m geoattend.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    try:
        configure_logging(get_settings(), verbose=args.verbose)
        return int(func(args))
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except (HrApiError, httpx.HTTPError) as e:
        logger.error("HR backend request failed: %s", e)
        print(f"error: backend request failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
