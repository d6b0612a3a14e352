"""Unit tests for timestamp and chapter span derivation."""

from __future__ import annotations

from podvoice.models.datatypes import Chapter, Turn
from podvoice.pipeline.timeline import SegmentTimeline


def _turns(durations: list[float], chapters: list[str] | None = None) -> list[Turn]:
    """Build turns with the given durations and chapter assignment."""

    chapter_ids = chapters or ["topic-1"] * len(durations)
    return [
        Turn(
            turn_id=f"turn-{index:03d}",
            chapter_id=chapter_ids[index],
            speaker="host",
            text="text",
            audio="file:///clip.wav" if duration else "",
            duration=duration,
            timestamp=99.0,
        )
        for index, duration in enumerate(durations)
    ]


def test_recompute_sets_running_sum_timestamps() -> None:
    """Each timestamp equals the summed duration of the turns before it."""

    turns = SegmentTimeline().recompute(_turns([2.0, 3.5, 0.0, 1.25]))

    assert [turn.timestamp for turn in turns] == [0.0, 2.0, 5.5, 5.5]
    assert SegmentTimeline().total_duration(turns) == 6.75


def test_recompute_ignores_negative_and_nan_durations() -> None:
    """Invalid durations contribute nothing to later timestamps."""

    turns = SegmentTimeline().recompute(_turns([1.0, -4.0, float("nan"), 2.0]))

    assert [turn.timestamp for turn in turns] == [0.0, 1.0, 1.0, 1.0]
    assert SegmentTimeline().total_duration(turns) == 3.0


def test_recompute_keeps_turns_whose_timestamp_is_already_correct() -> None:
    """Unchanged turns are returned as the same objects."""

    timeline = SegmentTimeline()
    first_pass = timeline.recompute(_turns([1.0, 2.0]))

    second_pass = timeline.recompute(first_pass)

    assert all(before is after for before, after in zip(first_pass, second_pass))


def test_recompute_chapters_spans_member_turns() -> None:
    """Chapter spans cover their members; chapters without members are untouched."""

    timeline = SegmentTimeline()
    turns = timeline.recompute(
        _turns([2.0, 3.5, 0.0, 1.25], chapters=["intro", "intro", "body", "body"])
    )
    empty = Chapter(chapter_id="outro", title="Outro", start_time=9.0, end_time=9.0)
    chapters = [Chapter(chapter_id="intro", title="Intro"), Chapter(chapter_id="body", title="Body"), empty]

    updated = timeline.recompute_chapters(chapters, turns)

    assert [(chapter.start_time, chapter.end_time) for chapter in updated[:2]] == [
        (0.0, 5.5),
        (5.5, 6.75),
    ]
    assert updated[2] is empty
