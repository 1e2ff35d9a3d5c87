"""
Tests for Metric timing and encoding.
"""

import time

import pytest


class TestMetricTiming:
    def test_start_stop(self):
        from ServerTiming import Metric

        m = Metric()
        m.start()
        time.sleep(0.05)
        m.stop()

        assert m.duration > 0
        assert m.duration >= 30
        assert m.duration < 1000

    def test_stop_without_start(self):
        from ServerTiming import Metric

        m = Metric()
        m.stop()

        assert m.duration == 0

    def test_stop_unless_stopped_keeps_duration(self):
        from ServerTiming import Metric

        m = Metric()
        m.start()
        time.sleep(0.02)
        m.stop()
        first = m.duration

        time.sleep(0.02)
        m.stop_unless_stopped()
        assert m.duration == first

        time.sleep(0.02)
        m.stop()
        assert m.duration == first

    def test_restart_records_new_duration(self):
        from ServerTiming import Metric

        m = Metric().start()
        m.stop()
        first = m.duration

        m.start()
        time.sleep(0.02)
        m.stop()
        assert m.duration != first

    def test_chaining(self):
        from ServerTiming import Metric

        m = Metric(name="sql").with_desc("SQL query").start()
        assert m.running
        assert m.desc == "SQL query"

        assert m.stop() is m
        assert not m.running

    def test_context_manager(self):
        from ServerTiming import Metric

        with Metric(name="block") as m:
            assert m.running
            time.sleep(0.01)

        assert not m.running
        assert m.duration > 0

    def test_context_manager_stops_on_error(self):
        from ServerTiming import Metric

        m = Metric(name="failing")
        with pytest.raises(RuntimeError), m:
            time.sleep(0.01)
            raise RuntimeError("boom")

        assert not m.running
        assert m.duration > 0

    def test_context_manager_after_explicit_stop(self):
        from ServerTiming import Metric

        with Metric(name="early") as m:
            m.stop()
            recorded = m.duration
            time.sleep(0.02)

        assert m.duration == recorded

    def test_equality_ignores_timer_state(self):
        from ServerTiming import Metric

        running = Metric(name="a", duration=5).start()
        assert running == Metric(name="a", duration=5)


class TestMetricEncoding:
    def test_name_only(self):
        from ServerTiming import Metric

        assert str(Metric(name="cache")) == "cache"

    def test_desc_and_duration(self):
        from ServerTiming import Metric

        m = Metric(name="sql-1", duration=100, desc="MySQL lookup Server")
        assert str(m) == 'sql-1;desc="MySQL lookup Server";dur=100'

    def test_token_desc_is_not_quoted(self):
        from ServerTiming import Metric

        assert str(Metric(name="db", desc="primary")) == "db;desc=primary"

    def test_fractional_duration(self):
        from ServerTiming import Metric

        assert str(Metric(name="a", duration=100.1)) == "a;dur=100.1"
        assert str(Metric(name="a", duration=12.5)) == "a;dur=12.5"
        assert str(Metric(name="a", duration=0.25)) == "a;dur=0.25"

    def test_zero_duration_omitted(self):
        from ServerTiming import Metric

        assert str(Metric(name="a", duration=0, desc="x")) == "a;desc=x"

    def test_extra_params_follow_desc_and_dur(self):
        from ServerTiming import Metric

        m = Metric(name="a", duration=3, desc="d", extra={"region": "eu-west", "note": "two words"})
        assert str(m) == 'a;desc=d;dur=3;region=eu-west;note="two words"'

    def test_extra_desc_shadows_field(self):
        from ServerTiming import Metric

        m = Metric(name="a", desc="field", extra={"desc": "extra"})
        assert str(m) == "a;desc=extra"

    def test_extra_dur_shadows_field(self):
        from ServerTiming import Metric

        m = Metric(name="a", duration=10, extra={"dur": "fast"})
        assert str(m) == "a;dur=fast"

    def test_quotes_are_escaped(self):
        from ServerTiming import Metric

        m = Metric(name="a", desc='say "hi"')
        assert str(m) == 'a;desc="say \\"hi\\""'

    def test_empty_extra_value_is_quoted(self):
        from ServerTiming import Metric

        assert str(Metric(name="a", extra={"flag": ""})) == 'a;flag=""'

    def test_control_characters_replaced(self):
        from ServerTiming import Metric

        m = Metric(name="db", desc="a\r\nX-Injected: 1")
        assert str(m) == 'db;desc="a  X-Injected: 1"'

    def test_control_characters_in_extra_and_name(self):
        from ServerTiming import Metric

        m = Metric(name="db\n", extra={"note": "x\ny", "k\r": "v"})
        assert "\n" not in str(m)
        assert "\r" not in str(m)
        assert str(m) == 'db ;note="x y";k =v'

    def test_tab_is_kept(self):
        from ServerTiming import Metric

        assert str(Metric(name="a", desc="x\ty")) == 'a;desc="x\ty"'

    def test_non_latin1_replaced(self):
        from ServerTiming import Metric

        value = str(Metric(name="db", desc="lookup → cache", duration=5))
        assert value == 'db;desc="lookup ? cache";dur=5'
        value.encode("latin-1")

    def test_obs_text_kept(self):
        from ServerTiming import Metric

        assert str(Metric(name="db", desc="café")) == 'db;desc="café"'

    def test_non_finite_duration_omitted(self):
        from ServerTiming import Metric

        assert str(Metric(name="a", duration=float("inf"))) == "a"
        assert str(Metric(name="a", duration=float("nan"))) == "a"

    def test_sub_nanosecond_duration_omitted(self):
        from ServerTiming import Metric

        assert str(Metric(name="a", duration=1e-9)) == "a"
        assert str(Metric(name="a", duration=0.000001)) == "a;dur=0.000001"


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("duration", "expected"),
        [
            (100, "100"),
            (100.0, "100"),
            (100.1, "100.1"),
            (0.5, "0.5"),
            (12.340, "12.34"),
            (1 / 3, "0.333333"),
            (1.0000001, "1"),
        ],
    )
    def test_format(self, duration, expected):
        from ServerTiming.metric import format_duration

        assert format_duration(duration) == expected
