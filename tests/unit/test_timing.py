import re
from unittest.mock import patch

from device_agent.timing import Stopwatch, now_utc_iso, process_start_utc_iso


def test_utc_timestamps_use_z_suffix_with_milliseconds():
    pattern = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$')
    assert pattern.match(now_utc_iso())
    assert pattern.match(process_start_utc_iso())
    assert process_start_utc_iso() <= now_utc_iso()


def test_stopwatch_formats_short_and_long_runs():
    watch = Stopwatch(started=100.0)

    with patch('device_agent.timing.time.monotonic', return_value=112.34):
        assert watch.format() == '12.3s'
    with patch('device_agent.timing.time.monotonic', return_value=100.0 + 125):
        assert watch.elapsed == 125
        assert watch.format() == '2m05s'
