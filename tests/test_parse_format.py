"""
Tests for log line classification and console formatting.
"""

from datetime import datetime

import click

from cwstream.obs import LogMessageParser, OutputFormatter, ParsedLogEntry


class TestLogMessageParser:
    """Test structured and free-text classification."""

    def test_structured_line(self):
        """Test JSON lines yield their level, message and timestamp."""
        parser = LogMessageParser()

        entry = parser.parse('{"level":"error","msg":"boom","timestamp":1700000000000}')
        assert entry.level == "ERROR"
        assert entry.message == "boom"
        assert entry.timestamp == 1700000000000

    def test_structured_alternate_keys(self):
        """Test the fallback key names are honoured in order."""
        parser = LogMessageParser()

        entry = parser.parse('{"severity":"debug","message":"hi","@timestamp":"2024-01-01T00:00:00Z"}')
        assert entry.level == "DEBUG"
        assert entry.message == "hi"
        assert entry.timestamp == "2024-01-01T00:00:00Z"

        entry = parser.parse('{"log_level":"trace","time":5,"message":"m","msg":"ignored"}')
        assert entry.level == "TRACE"
        assert entry.message == "m"
        assert entry.timestamp == 5

    def test_structured_defaults(self):
        """Test missing level defaults to INFO and missing message to the raw line."""
        parser = LogMessageParser()
        line = '  {"user": "alice", "action": "login"}  '

        entry = parser.parse(line)
        assert entry.level == "INFO"
        assert entry.message == line
        assert entry.timestamp is None

    def test_free_text_warning(self):
        """Test WARNING stays distinct from WARN and keeps the whole line."""
        parser = LogMessageParser()

        entry = parser.parse("WARNING: disk almost full")
        assert entry.level == "WARNING"
        assert entry.message == "WARNING: disk almost full"
        assert entry.timestamp is None

        assert parser.parse("[warn] retrying").level == "WARN"

    def test_free_text_first_match_wins(self):
        """Test the first level token in the line is used."""
        parser = LogMessageParser()

        assert parser.parse("info: recovered after error").level == "INFO"
        assert parser.parse("2024-01-01 Debug cache miss, then ERROR").level == "DEBUG"

    def test_free_text_whole_words_only(self):
        """Test level tokens inside longer words are ignored."""
        parser = LogMessageParser()

        assert parser.parse("errors were INFORMATIONAL").level == "INFO"
        assert parser.parse("Traceback (most recent call last):").level == "INFO"

    def test_invalid_json_falls_back(self):
        """Test brace-wrapped invalid JSON is classified as free text without raising."""
        parser = LogMessageParser()

        entry = parser.parse("{not json}")
        assert entry.level == "INFO"
        assert entry.message == "{not json}"
        assert entry.timestamp is None

        entry = parser.parse('{"level": "error", oops}')
        assert entry.level == "ERROR"
        assert entry.message == '{"level": "error", oops}'

    def test_deeply_nested_json_falls_back(self):
        """Test JSON too deep to decode is classified as free text without raising."""
        parser = LogMessageParser()
        line = '{"a":' + "[" * 100000 + "]" * 100000 + "}"

        entry = parser.parse(line)
        assert entry.level == "INFO"
        assert entry.message == line
        assert entry.timestamp is None

    def test_structured_level_whitespace(self):
        """Test padded structured levels are normalised."""
        parser = LogMessageParser()

        entry = parser.parse('{"level": " error ", "msg": "boom"}')
        assert entry.level == "ERROR"
        assert OutputFormatter().color_for(entry.level) == "red"


class TestOutputFormatter:
    """Test console rendering."""

    def test_plain_rendering(self):
        """Test level padding and message without prefixes."""
        formatter = OutputFormatter(color=False)

        line = formatter.format(ParsedLogEntry(level="ERROR", message="boom"))
        assert line == "ERROR   boom"

        line = formatter.format(ParsedLogEntry(level="WARNING", message="disk"))
        assert line == "WARNING disk"

    def test_timestamp_and_stream_prefix(self):
        """Test the bracketed timestamp and stream name prefixes."""
        formatter = OutputFormatter(show_stream_name=True, color=False)
        expected_ts = datetime.fromtimestamp(1700000000).strftime("%Y-%m-%d %H:%M:%S")

        line = formatter.format(
            ParsedLogEntry(level="INFO", message="ready"),
            timestamp_ms=1700000000999,
            stream_name="web/1",
        )
        assert line == f"[{expected_ts}] [web/1] INFO    ready"

    def test_stream_name_hidden_by_default(self):
        """Test the stream name is only shown when enabled."""
        formatter = OutputFormatter(color=False)

        line = formatter.format(ParsedLogEntry(level="INFO", message="x"), stream_name="web/1")
        assert "web/1" not in line

    def test_level_colors(self):
        """Test the severity color table."""
        formatter = OutputFormatter()

        assert formatter.color_for("ERROR") == "red"
        assert formatter.color_for("WARN") == "yellow"
        assert formatter.color_for("warning") == "yellow"
        assert formatter.color_for("INFO") == "green"
        assert formatter.color_for("DEBUG") == "cyan"
        assert formatter.color_for("TRACE") == "magenta"
        assert formatter.color_for("FATAL") == "white"

    def test_colored_level(self):
        """Test the padded level is wrapped in its color."""
        formatter = OutputFormatter()

        line = formatter.format(ParsedLogEntry(level="ERROR", message="boom"))
        assert line == f"{click.style('ERROR  ', fg='red')} boom"
