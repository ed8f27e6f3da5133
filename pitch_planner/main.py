from __future__ import annotations

import argparse
import functools
import logging
import pathlib
from typing import List, Optional

import yaml

from .adapters import JsonFileBookingStore, fetch_feed
from .errors import PitchPlannerError
from .models import Club, ExternalTeam, LocalTeam, Pitch
from .pipeline import Plan, Planner, export_ics, report_rows
from .utils import env_flag, read_env, read_json, write_json

logger = logging.getLogger(__name__)

PACKAGE_DIR = pathlib.Path(__file__).resolve().parent
DEFAULT_CONFIG = PACKAGE_DIR / "config.yaml"

REPORT_FIELDS = ("uid", "date", "summary", "home", "from", "to", "start_at", "end_at")


def load_config(path: Optional[str] = None) -> dict:
    cfg_path = pathlib.Path(path or read_env("PITCH_PLANNER_CONFIG") or DEFAULT_CONFIG)
    return yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}


def feature_enabled(cfg: dict) -> bool:
    override = env_flag("ENABLE_BFV")
    if override is not None:
        return override
    return bool(cfg.get("feature_flags", {}).get("enable_bfv", False))


def select_team(cfg: dict, team_id: Optional[str]) -> tuple[Club, ExternalTeam]:
    clubs = {c["id"]: Club(**c) for c in cfg.get("clubs", [])}
    teams: List[ExternalTeam] = [ExternalTeam(**t) for t in cfg.get("teams", [])]
    if not teams:
        raise PitchPlannerError("no league teams configured")
    team = next((t for t in teams if t.id == team_id), None) if team_id else teams[0]
    if team is None:
        raise PitchPlannerError(f"unknown team {team_id!r}")
    club = clubs.get(team.club_id)
    if club is None:
        raise PitchPlannerError(f"team {team.id!r} refers to unknown club {team.club_id!r}")
    return club, team


def build_planner(cfg: dict) -> Planner:
    feed_cfg = cfg.get("feed", {}) or {}
    fetch = functools.partial(
        fetch_feed,
        allowed_hosts=feed_cfg.get("allowed_hosts", ["service.bfv.de", "www.bfv.de"]),
        timeout=float(feed_cfg.get("timeout", 20)),
    )
    store_path = read_env("PITCH_PLANNER_STORE") or (cfg.get("store", {}) or {}).get("path", ".cache/bookings.json")
    return Planner(
        store=JsonFileBookingStore(store_path),
        pitches=[Pitch(**p) for p in cfg.get("pitches", [])],
        local_teams=[LocalTeam(**t) for t in cfg.get("local_teams", [])],
        fetch=fetch,
        enabled=feature_enabled(cfg),
        include_unknown=bool(cfg.get("include_unknown", True)),
        tz_name=cfg.get("timezone"),
    )


def output_dir(cfg: dict) -> pathlib.Path:
    return pathlib.Path(cfg.get("output_dir", "out"))


def load_plan(cfg: dict, planner: Planner, team_id: Optional[str], all_games: bool = False) -> Plan:
    club, team = select_team(cfg, team_id)
    return planner.load(club, team, home_only=False if all_games else None)


def plan_cmd(cfg: dict, team_id: Optional[str], all_games: bool) -> None:
    planner = build_planner(cfg)
    plan = load_plan(cfg, planner, team_id, all_games)
    out = output_dir(cfg)
    rows = report_rows(plan, planner.pitches, cfg.get("timezone"))
    write_json(out / f"{plan.team.id}.json", rows)
    export_ics(plan, out / f"{plan.team.id}.ics", planner.pitches)

    for r in rows:
        pitch = r["booked_pitch"] or (", ".join(r["free_pitches"]) if r["free_pitches"] else "keine")
        print(f"{r['date']} {r['from']}-{r['to']}  [{r['home']}]  {r['summary']}  ->  {pitch}")
    if not rows:
        print("Keine Spiele gefunden.")


def book_cmd(cfg: dict, team_id: Optional[str], uid: str, pitch_id: Optional[str], is_admin: bool, user: Optional[str]) -> None:
    planner = build_planner(cfg)
    plan = load_plan(cfg, planner, team_id)
    booking_id = planner.book(plan, uid, pitch_id=pitch_id, is_admin=is_admin, created_by=user)
    print(booking_id)


def undo_cmd(cfg: dict, team_id: Optional[str], uid: str, is_admin: bool) -> None:
    planner = build_planner(cfg)
    plan = load_plan(cfg, planner, team_id)
    planner.undo(plan, uid, is_admin=is_admin)


def validate_cmd(cfg: dict, team_id: Optional[str]) -> None:
    _club, team = select_team(cfg, team_id)
    path = output_dir(cfg) / f"{team.id}.json"
    data = read_json(path)
    ok = True
    if data is None:
        print(f"missing {path.name}")
        ok = False
    elif not isinstance(data, list):
        print(f"{path.name} not a list")
        ok = False
    else:
        for idx, row in enumerate(data):
            for field in REPORT_FIELDS:
                if not row.get(field):
                    print(f"{path.name}[{idx}] missing {field}")
                    ok = False
                    break
    if not ok:
        raise SystemExit(1)
    print("ok")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="pitch-planner", description="Plan pitches for league home fixtures")
    parser.add_argument("--config", help="path to config.yaml")
    parser.add_argument("--team", help="league team id (defaults to the first configured team)")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_plan = sub.add_parser("plan")
    p_plan.add_argument("--all-games", action="store_true", help="include away fixtures")

    p_book = sub.add_parser("book")
    p_book.add_argument("--uid", required=True)
    p_book.add_argument("--pitch")
    p_book.add_argument("--admin", action="store_true")
    p_book.add_argument("--user")

    p_undo = sub.add_parser("undo")
    p_undo.add_argument("--uid", required=True)
    p_undo.add_argument("--admin", action="store_true")

    sub.add_parser("validate")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = load_config(args.config)

    try:
        if args.cmd == "plan":
            plan_cmd(cfg, args.team, args.all_games)
        elif args.cmd == "book":
            book_cmd(cfg, args.team, args.uid, args.pitch, args.admin, args.user)
        elif args.cmd == "undo":
            undo_cmd(cfg, args.team, args.uid, args.admin)
        elif args.cmd == "validate":
            validate_cmd(cfg, args.team)
    except PitchPlannerError as e:
        logger.error("%s", e)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
