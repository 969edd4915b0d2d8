import pytest
from pathlib import Path
from cca_sim.utils.viz import export_histogram, export_histogram_ascii


@pytest.fixture
def sample_trials():
    """Provides sample per-trial records for testing."""
    return [
        {'success': True, 'guesses_used': 1, 'probes': 1200, 'secret': '11223344'},
        {'success': True, 'guesses_used': 2, 'probes': 800, 'secret': '01020304'},
        {'success': False, 'guesses_used': 0, 'probes': 64770, 'secret': ''},
    ]


class TestExportHistogramHTML:
    def test_export_histogram_empty(self, tmp_path: Path):
        """Tests that an HTML file is created when there are no trials."""
        # given
        output_path = tmp_path / "hist.html"

        # when
        export_histogram([], str(output_path))

        # then
        assert output_path.exists()
        assert "No data to display" in output_path.read_text()

    def test_export_histogram_with_data(self, tmp_path: Path, sample_trials):
        """Tests that a valid HTML file is created for sample trials."""
        # given
        output_path = tmp_path / "hist.html"

        # when
        export_histogram(sample_trials, str(output_path))

        # then
        assert output_path.exists()
        content = output_path.read_text()
        assert "Attack Trials (3) by probes" in content
        assert "cdn.plot.ly" in content

    def test_export_histogram_drops_bad_values(self, tmp_path: Path, sample_trials):
        """Tests that trials with a non-numeric field are dropped."""
        # given
        trials = sample_trials + [{'success': True, 'guesses_used': 1, 'probes': 'invalid', 'secret': ''}]
        output_path = tmp_path / "hist.html"

        # when
        export_histogram(trials, str(output_path))

        # then
        assert "Attack Trials (3) by probes" in output_path.read_text()


class TestExportHistogramASCII:
    def test_export_ascii_empty(self):
        assert "No trials to display" in export_histogram_ascii([])

    def test_export_ascii_single_value(self):
        trials = [{'probes': 7}, {'probes': 7}]
        assert export_histogram_ascii(trials) == "probes: all 2 trials at 7"

    def test_export_ascii_with_data(self, sample_trials):
        # when
        chart = export_histogram_ascii(sample_trials, bins=4)

        # then
        lines = chart.splitlines()
        assert lines[0] == "probes (3 trials)"
        assert len(lines) == 5
        # Both small values share the first bin
        assert lines[1].endswith(" 2")
        assert lines[-1].endswith(" 1")
