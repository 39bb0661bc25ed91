from __future__ import annotations

from pathlib import Path

import streamlit as st

from track_history.models import DEFAULT_STORE_PATH, LocationSample
from track_history.persistence import SnapshotFile, SnapshotWriter, attach_writer
from track_history.settings import out_of_range_fields
from track_history.stats import compute_stats, summarize_days
from track_history.store import HistoryStore
from track_history.timeutils import dt_from_epoch_ms, tzinfo_from_name

ALL_DAYS = "全部日期"


@st.cache_data(show_spinner=False)
def _load_snapshot(store_path: str, mtime: float) -> dict | None:
    _ = mtime  # part of cache key so updated files reload automatically
    return SnapshotFile(store_path).load()


def _sample_rows(samples: list[LocationSample], tz_name: str | None) -> list[dict[str, object]]:
    return [
        {
            "time_local": dt_from_epoch_ms(s.timestamp_ms, tz_name).isoformat(sep=" "),
            "latitude": s.coords.latitude,
            "longitude": s.coords.longitude,
            "accuracy_m": s.coords.accuracy,
            "speed_mps": s.coords.speed,
            "id": s.id,
        }
        for s in samples
    ]


def main() -> None:
    st.set_page_config(page_title="位置记录：按天统计", layout="wide")
    st.title("位置记录：点数 / 距离 / 时长")

    with st.sidebar:
        st.subheader("数据与时区")
        tz_text = st.text_input("时区（IANA，留空为系统本地时区）", value="")
        store_path = st.text_input("快照文件路径", value=DEFAULT_STORE_PATH)
        sort_by_time = st.checkbox("统计前按时间戳排序", value=False)

    tz_name = tz_text.strip() or None
    if tz_name is not None:
        try:
            tzinfo_from_name(tz_name)
        except ValueError as exc:
            st.error(str(exc))
            return

    p = Path(store_path)
    if not p.exists():
        st.error(f"找不到文件：{store_path!r}。先用 `python -m track_history import-csv` 导入数据。")
        return

    store = HistoryStore(tz_name=tz_name)
    doc = _load_snapshot(store_path, p.stat().st_mtime)
    if doc is not None:
        store.restore(doc)

    day_keys = store.list_day_keys()
    if not day_keys:
        st.info("暂无位置记录。")
        return

    # 每次打开页面默认显示全部日期
    choice = st.selectbox("日期", [ALL_DAYS, *reversed(day_keys)], index=0)
    selected = None if choice == ALL_DAYS else choice
    samples = store.select(selected)
    stats = compute_stats(samples, sort_by_time=sort_by_time)

    st.subheader("汇总")
    if stats is None:
        st.info("该日期没有位置记录。")
    else:
        c1, c2, c3 = st.columns(3)
        c1.metric("位置点", str(stats.point_count))
        c2.metric("距离", stats.distance_text)
        c3.metric("时长", stats.duration_text)

    with st.expander("按天明细", expanded=False):
        day_rows = [
            {
                "date": d.day_key,
                "points": d.stats.point_count,
                "distance": d.stats.distance_text,
                "duration": d.stats.duration_text,
            }
            for d in summarize_days(store, sort_by_time=sort_by_time)
        ]
        st.dataframe(day_rows, use_container_width=True, height=360)

    st.subheader("位置点")
    st.dataframe(_sample_rows(samples, tz_name), use_container_width=True, height=520)

    for name in out_of_range_fields(store.settings):
        st.warning(f"追踪设置 {name} 超出推荐范围。")

    if selected is not None and st.button(f"清除 {selected} 的记录", type="primary"):
        writer = SnapshotWriter(SnapshotFile(store_path))
        attach_writer(store, writer)
        store.clear_day(selected)
        writer.close()
        st.success(f"已清除：{selected}")
        st.rerun()


if __name__ == "__main__":
    main()
