#!/usr/bin/env python3
"""
Test study day rollover handling.
"""

import sys
from datetime import datetime
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from hanki.utils.study_time import StudyTime


def local_ms(*args):
    return int(datetime(*args).timestamp() * 1000)


def test_study_date_before_rollover_counts_as_previous_day():
    st = StudyTime(rollover_hour=4)
    assert st.get_study_date(local_ms(2024, 5, 15, 2, 0)) == "2024-05-14"
    assert st.get_study_date(local_ms(2024, 5, 15, 6, 0)) == "2024-05-15"


def test_next_rollover_timestamp():
    st = StudyTime(rollover_hour=4)
    assert st.get_next_rollover_timestamp(local_ms(2024, 5, 15, 2, 0)) == local_ms(2024, 5, 15, 4, 0)
    assert st.get_next_rollover_timestamp(local_ms(2024, 5, 15, 4, 0)) == local_ms(2024, 5, 16, 4, 0)
    assert st.get_next_rollover_timestamp(local_ms(2024, 5, 15, 23, 30)) == local_ms(2024, 5, 16, 4, 0)


def test_study_day_bounds():
    st = StudyTime(rollover_hour=4)
    assert st.get_study_day_bounds(local_ms(2024, 5, 15, 2, 0)) == (
        local_ms(2024, 5, 14, 4, 0), local_ms(2024, 5, 15, 4, 0))
    assert st.get_study_day_bounds(local_ms(2024, 5, 15, 4, 0)) == (
        local_ms(2024, 5, 15, 4, 0), local_ms(2024, 5, 16, 4, 0))


def test_same_study_day_and_time_until_rollover():
    st = StudyTime(rollover_hour=4)
    assert st.is_same_study_day(local_ms(2024, 5, 15, 23, 0), local_ms(2024, 5, 16, 3, 0))
    assert not st.is_same_study_day(local_ms(2024, 5, 16, 3, 0), local_ms(2024, 5, 16, 5, 0))
    assert st.time_until_rollover(local_ms(2024, 5, 15, 3, 30)) == 30 * 60 * 1000


def test_custom_rollover_hour():
    st = StudyTime(rollover_hour=0)
    assert st.get_study_date(local_ms(2024, 5, 15, 0, 30)) == "2024-05-15"
