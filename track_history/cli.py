"""Command-line interface for track_history.

Run:
    python -m track_history days --store location_history.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from track_history.csv_io import export_readable_csv, import_fixes, load_fixes
from track_history.models import DEFAULT_STORE_PATH, DEFAULT_TZ
from track_history.persistence import open_store
from track_history.settings import out_of_range_fields, parse_setting_changes
from track_history.stats import compute_stats, summarize_days
from track_history.store import HistoryStore
from track_history.timeutils import parse_day_key, tzinfo_from_name


def _cmd_days(store: HistoryStore, args: argparse.Namespace) -> int:
    days = summarize_days(store, sort_by_time=args.sort_by_time)
    if not days:
        print("暂无位置记录。")
        return 0

    print("### 按天统计")
    for d in days:
        print(f"{d.day_key}  points={d.stats.point_count}  distance={d.stats.distance_text}  duration={d.stats.duration_text}")
    return 0


def _cmd_stats(store: HistoryStore, args: argparse.Namespace) -> int:
    selected = parse_day_key(args.day) if args.day else None
    samples = store.select(selected)
    stats = compute_stats(samples, sort_by_time=args.sort_by_time)
    label = selected or "全部日期"
    if stats is None:
        print(f"{label}：没有位置记录。")
        return 0

    print(f"### {label}")
    print(f"points={stats.point_count}")
    print(f"distance={stats.distance_text}（{stats.total_distance_m:.1f} m）")
    print(f"duration={stats.duration_text}（{stats.duration_ms} ms）")

    if args.json:
        payload = asdict(stats) | {"day": selected}
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _cmd_import_csv(store: HistoryStore, args: argparse.Namespace) -> int:
    fixes, summary = load_fixes(args.csv)
    before = len(store)
    import_fixes(store, fixes)
    added = len(store) - before
    print(f"total_rows={summary.rows_total}, parsed={summary.rows_parsed}, skipped={summary.rows_skipped}")
    # id 由时间戳和坐标生成，重复导入相同的点不会重复写入
    print(f"新增位置点={added}，当前共 {len(store.list_day_keys())} 天")
    return 0


def _cmd_export(store: HistoryStore, args: argparse.Namespace) -> int:
    selected = parse_day_key(args.day) if args.day else None
    n = export_readable_csv(store.select(selected), args.out, store.tz_name)
    print(f"已导出：{args.out}（{n} 行）")
    return 0


def _cmd_clear(store: HistoryStore, args: argparse.Namespace) -> int:
    if args.all:
        store.clear_all()
        print("已清空全部位置记录。")
        return 0

    key = parse_day_key(args.day)
    if key not in store.list_day_keys():
        print(f"{key} 没有位置记录，无需清除。")
        return 0
    store.clear_day(key)
    print(f"已清除 {key} 的位置记录。")
    return 0


def _cmd_settings(store: HistoryStore, args: argparse.Namespace) -> int:
    if args.set:
        store.update_settings(**parse_setting_changes(args.set))

    settings = store.settings
    print("### 追踪设置")
    print(f"foreground_interval_ms={settings.foreground_interval_ms}")
    print(f"background_interval_ms={settings.background_interval_ms}")
    print(f"distance_filter_m={settings.distance_filter_m}")
    print(f"accuracy_level={settings.accuracy_level.value}")
    for name in out_of_range_fields(settings):
        print(f"注意：{name} 超出推荐范围（仅提示，不影响保存）")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--store", type=str, default=DEFAULT_STORE_PATH, help="位置记录快照（JSON）路径")
    common.add_argument("--tz", type=str, default=DEFAULT_TZ, help="时区（IANA），默认使用系统本地时区")
    common.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")

    p = argparse.ArgumentParser(prog="track_history")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_days = sub.add_parser("days", parents=[common], help="列出有记录的日期及每天的统计")
    p_days.add_argument("--sort-by-time", action="store_true", help="统计前先按时间戳排序")
    p_days.set_defaults(func=_cmd_days)

    p_stats = sub.add_parser("stats", parents=[common], help="统计点数/距离/时长")
    p_stats.add_argument("--day", type=str, default=None, help="只统计某一天（YYYY-MM-DD），默认全部")
    p_stats.add_argument("--sort-by-time", action="store_true", help="统计前先按时间戳排序")
    p_stats.add_argument("--json", action="store_true", help="额外输出JSON（便于后处理）")
    p_stats.set_defaults(func=_cmd_stats)

    p_imp = sub.add_parser("import-csv", parents=[common], help="导入轨迹导出文件（geoTime/latitude/longitude）")
    p_imp.add_argument("--csv", type=str, default="Path.csv", help="输入CSV路径")
    p_imp.set_defaults(func=_cmd_import_csv)

    p_exp = sub.add_parser("export", parents=[common], help="导出可读时间的位置点CSV")
    p_exp.add_argument("--day", type=str, default=None, help="只导出某一天（YYYY-MM-DD），默认全部")
    p_exp.add_argument("--out", type=str, default="readable.csv", help="输出CSV路径")
    p_exp.set_defaults(func=_cmd_export)

    p_clear = sub.add_parser("clear", parents=[common], help="清除某一天或全部记录")
    g = p_clear.add_mutually_exclusive_group(required=True)
    g.add_argument("--day", type=str, help="要清除的日期（YYYY-MM-DD）")
    g.add_argument("--all", action="store_true", help="清除全部日期")
    p_clear.set_defaults(func=_cmd_clear)

    p_set = sub.add_parser("settings", parents=[common], help="查看/修改追踪设置")
    p_set.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="修改设置，例如 --set distance_filter_m=20 --set accuracy_level=high",
    )
    p_set.set_defaults(func=_cmd_settings)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.tz is not None:
            tzinfo_from_name(args.tz)
        store, writer = open_store(args.store, args.tz)
    except ValueError as exc:
        print(f"错误：{exc}", file=sys.stderr)
        return 2

    try:
        return int(args.func(store, args))
    except ValueError as exc:
        print(f"错误：{exc}", file=sys.stderr)
        return 2
    finally:
        writer.close()


if __name__ == "__main__":
    raise SystemExit(main())
