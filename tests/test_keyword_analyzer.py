"""Tests for the end-to-end analysis pipeline and CLI."""

import json
from pathlib import Path

import pandas as pd
import pytest

from seo_fib.core.keyword_analyzer import (
    analyze_dataframe,
    analyze_file,
    analyze_rows,
    build_keyword_report,
    collect_input_files,
    format_status_message,
    load_rank_csv,
    main,
)
from seo_fib.core.validators import (
    AnalysisConfig,
    EmptyInputError,
    MissingColumnsError,
    UnreadableInputError,
)

WIDE_CSV = (
    "Keyword,Search Volume,site.com/x_20240101,site.com/x_20240101_type,"
    "site.com/x_20240101_landing,site.com/x_20240102,site.com/x_20240103,site.com/x_20240104\n"
    "shoes,1000,10,organic,https://site.com/shoes,5,8,3\n"
    "boots,200,-,organic,,42,-,-\n"
    "hats,50,20,organic,,21,20,25\n"
)


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


class TestAnalyzeRows:
    """Tests for a full analysis pass."""

    def test_wide_export(self, wide_rows):
        report = analyze_rows(wide_rows, source="export.csv")

        assert report.source == "export.csv"
        assert report.input_format == "wide"
        assert report.total_keywords == 2
        assert report.analyzed_keywords == 1
        assert [row.keyword for row in report.volatile_keywords] == ["shoes"]
        assert report.status_message == "Found 1 volatile keywords out of 2 total"

    def test_single_point_keyword_counted_but_not_analyzed(self, wide_rows):
        report = analyze_rows(wide_rows)

        assert "boots" not in report.keywords
        assert all(row.keyword != "boots" for row in report.volatile_keywords)
        assert report.total_keywords == 2

    def test_volatile_row_fields(self, wide_rows):
        row = analyze_rows(wide_rows).volatile_keywords[0]

        assert row.search_volume == 1000
        assert row.current_position == 3
        assert row.best_position == 3
        assert row.worst_position == 10
        assert row.volatility_score == pytest.approx(14.5046, abs=1e-3)

    def test_keyword_payload(self, wide_rows):
        payload = analyze_rows(wide_rows).keywords["shoes"]

        assert payload.series[0] == {"date": "2024-01-01", "position": 10}
        assert payload.levels["0.5"] == 6.5
        assert payload.prediction is not None
        assert 0 <= payload.reliability <= 100
        assert payload.volatility.is_volatile

    def test_long_export(self, long_rows):
        report = analyze_rows(long_rows)

        assert report.input_format == "long"
        assert report.total_keywords == 2
        assert report.keywords["hats"].series == [
            {"date": "2024-01-01", "position": 20},
            {"date": "2024-01-02", "position": 4},
            {"date": "2024-01-03", "position": 7},
        ]

    def test_no_volatile_keywords(self):
        rows = [
            {"Keyword": "k", "Date": "2024-01-01", "Position": "5"},
            {"Keyword": "k", "Date": "2024-01-02", "Position": "5"},
        ]
        report = analyze_rows(rows)

        assert report.volatile_keywords == []
        assert report.status_message == "No volatile keywords found in the data"

    def test_threshold_from_config(self, wide_rows):
        report = analyze_rows(wide_rows, AnalysisConfig(volatility_threshold=50))
        assert report.volatile_keywords == []

    def test_warnings_recorded(self):
        rows = [
            {"Keyword": "k", "Date": "bad", "Position": "5"},
            {"Keyword": "k", "Date": "2024-01-02", "Position": "5"},
        ]
        report = analyze_rows(rows)

        assert len(report.warnings) == 1
        assert report.summary["dropped_rows"] == 1

    def test_no_valid_rows_is_fatal(self):
        rows = [{"Keyword": "k", "Date": "2024-01-01", "Position": "-"}]
        with pytest.raises(EmptyInputError):
            analyze_rows(rows)

    def test_missing_columns_is_fatal(self):
        with pytest.raises(MissingColumnsError):
            analyze_rows([{"Keyword": "k", "Position": "1"}])

    def test_fresh_state_per_run(self, wide_rows, long_rows):
        """A second run shares nothing with the first."""
        first = analyze_rows(wide_rows)
        second = analyze_rows(long_rows)

        assert set(first.keywords) == {"shoes"}
        assert set(second.keywords) == {"hats"}

    def test_summary(self, wide_rows):
        summary = analyze_rows(wide_rows).summary

        assert summary["total_keywords"] == 2
        assert summary["volatile_keywords"] == 1
        assert summary["volatile_rate"] == "50.0%"


class TestBuildKeywordReport:
    def test_single_point_report(self, make_series):
        report = build_keyword_report(make_series([4]), AnalysisConfig())

        assert report.prediction is None
        assert report.patterns == []
        assert report.reliability == 0
        assert report.volatility is None


class TestStatusMessage:
    def test_messages(self):
        assert format_status_message(0, 10) == "No volatile keywords found in the data"
        assert format_status_message(3, 10) == "Found 3 volatile keywords out of 10 total"


class TestCsvLoading:
    """Tests for CSV loading and file analysis."""

    def test_load_rank_csv_keeps_sentinels(self, tmp_path):
        rows = load_rank_csv(_write(tmp_path, "export.csv", WIDE_CSV))

        assert len(rows) == 3
        assert rows[1]["site.com/x_20240101"] == "-"
        assert rows[1]["site.com/x_20240101_landing"] == ""

    def test_empty_file(self, tmp_path):
        with pytest.raises(EmptyInputError):
            load_rank_csv(_write(tmp_path, "empty.csv", ""))

    def test_header_only(self, tmp_path):
        with pytest.raises(EmptyInputError):
            load_rank_csv(_write(tmp_path, "header.csv", "Keyword,Date,Position\n"))

    def test_unterminated_quote(self, tmp_path):
        path = _write(tmp_path, "bad.csv", 'Keyword,Date,Position\n"unterminated,2024-01-01,3\n')
        with pytest.raises(UnreadableInputError) as exc_info:
            load_rank_csv(path)

        assert isinstance(exc_info.value.__cause__, pd.errors.ParserError)

    def test_undecodable_bytes(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_bytes(b"\xff\xfeK\x00e\x00y\x00\n\x00\xff\x00")
        with pytest.raises(UnreadableInputError):
            load_rank_csv(path)

    def test_analyze_file(self, tmp_path):
        report = analyze_file(_write(tmp_path, "export.csv", WIDE_CSV))

        assert report.source == "export.csv"
        assert report.total_keywords == 3
        assert report.analyzed_keywords == 2
        assert report.keywords["shoes"].series[0]["position"] == 10

    def test_analyze_dataframe(self):
        df = pd.DataFrame(
            {
                "Keyword": ["k", "k", "k"],
                "Date": ["2024-01-01", "2024-01-02", "2024-01-03"],
                "Position": [9, 2, 7],
                "URL": [None, "https://a/", None],
            }
        )
        report = analyze_dataframe(df)

        assert report.keywords["k"].series[1] == {"date": "2024-01-02", "position": 2}


class TestCollectInputFiles:
    def test_dedup_and_glob(self, tmp_path):
        first = _write(tmp_path, "a.csv", WIDE_CSV)
        _write(tmp_path, "b.txt", "x")

        paths = collect_input_files(tmp_path, ["*.csv"], [str(first)])

        assert paths == [first.resolve()]


class TestMain:
    """Tests for the CLI entry point."""

    def test_writes_outputs(self, tmp_path):
        csv_path = _write(tmp_path, "export.csv", WIDE_CSV)
        out_dir = tmp_path / "reports"

        exit_code = main(["--files", str(csv_path), "--output-dir", str(out_dir)])

        assert exit_code == 0
        report = json.loads((out_dir / "export_analysis.json").read_text(encoding="utf-8"))
        assert report["total_keywords"] == 3
        assert (out_dir / "export_volatile.csv").exists()
        assert (out_dir / "export_summary.csv").exists()
        assert (out_dir / "export_charts" / "shoes_chart.json").exists()

    def test_keyword_filter(self, tmp_path):
        csv_path = _write(tmp_path, "export.csv", WIDE_CSV)
        out_dir = tmp_path / "reports"

        main(
            [
                "--files",
                str(csv_path),
                "--output-dir",
                str(out_dir),
                "--keywords",
                "hats",
            ]
        )

        charts = sorted(p.name for p in (out_dir / "export_charts").iterdir())
        assert charts == ["hats_chart.json"]

    def test_bad_file_returns_failure(self, tmp_path):
        csv_path = _write(tmp_path, "broken.csv", "Foo,Bar\n1,2\n")

        exit_code = main(["--files", str(csv_path), "--output-dir", str(tmp_path / "out")])

        assert exit_code == 1

    @pytest.mark.parametrize(
        "bad_content",
        [
            b'Keyword,Date,Position\n"unterminated,2024-01-01,3\n',
            b"\xff\xfeK\x00e\x00y\x00\n\x00\xff\x00",
        ],
    )
    def test_unreadable_file_does_not_stop_batch(self, tmp_path, bad_content):
        bad_path = tmp_path / "a_bad.csv"
        bad_path.write_bytes(bad_content)
        good_path = _write(tmp_path, "b_good.csv", WIDE_CSV)
        out_dir = tmp_path / "reports"

        exit_code = main(
            ["--files", str(bad_path), str(good_path), "--output-dir", str(out_dir)]
        )

        assert exit_code == 0
        assert not (out_dir / "a_bad_analysis.json").exists()
        assert (out_dir / "b_good_analysis.json").exists()

    def test_no_inputs_errors(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["--files", str(tmp_path / "missing.csv"), "--output-dir", str(tmp_path)])

    def test_invalid_timezone_errors(self, tmp_path):
        csv_path = _write(tmp_path, "export.csv", WIDE_CSV)
        with pytest.raises(SystemExit):
            main(
                [
                    "--files",
                    str(csv_path),
                    "--output-dir",
                    str(tmp_path),
                    "--timezone",
                    "Mars/Olympus",
                ]
            )
