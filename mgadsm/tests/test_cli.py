"""Tests for the command-line interface."""
import csv
import tempfile
import unittest
from pathlib import Path

import numpy as np
from numpy.testing import assert_allclose

from mgadsm.__main__ import main
from mgadsm.constants import DAY
from mgadsm.itinerary import Itinerary
from mgadsm.nodes import DepartureNode, DSMNode, RendezvousNode
from mgadsm.report import TrajectoryReport


class TestCLI(unittest.TestCase):

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.tmpdir = Path(self._tmpdir.name)
        itinerary = Itinerary(
            name="earth-mars",
            nodes=[
                DepartureNode(body="Earth", epoch=7000.0, delta_v=(0.5, 0.0, 0.5)),
                DSMNode(alpha=0.4),
                RendezvousNode(body="Mars", time_of_flight=250.0),
            ],
        )
        self.itinerary_file = itinerary.save(self.tmpdir / "earth-mars.itn")

    def tearDown(self):
        self._tmpdir.cleanup()

    def test_layout(self):
        self.assertEqual(main(['layout', str(self.itinerary_file)]), 0)

    def test_evaluate_writes_report(self):
        report_file = self.tmpdir / "report.json"
        status = main(['evaluate', str(self.itinerary_file), '--report', str(report_file)])

        self.assertEqual(status, 0)
        report = TrajectoryReport.load(report_file)
        self.assertEqual(len(report.delta_vs), 3)
        assert_allclose(report.delta_vs[0], 0.5)

    def test_evaluate_override_design_vector(self):
        report_file = self.tmpdir / "report.json"
        x = [7010.0, 1.0, 0.0, 0.5, 0.5, 240.0 * DAY]
        main(['evaluate', str(self.itinerary_file), '--x', *map(str, x), '-r', str(report_file)])

        report = TrajectoryReport.load(report_file)
        assert_allclose(report.design_vector, x)
        assert_allclose(report.delta_vs[0], 1.0)

    def test_evaluate_writes_plot(self):
        plot_file = self.tmpdir / "trajectory.html"
        main(['evaluate', str(self.itinerary_file), '--plot', str(plot_file)])

        self.assertTrue(plot_file.exists())
        self.assertIn("plotly", plot_file.read_text().lower())

    def test_batch(self):
        """Each CSV row is evaluated and written with its total."""
        vectors = self.tmpdir / "vectors.csv"
        output = self.tmpdir / "dvs.csv"
        np.savetxt(vectors, [[7000.0, 0.5, 0.0, 0.5, 0.4, 250.0 * DAY],
                             [7100.0, 0.2, 0.3, 0.5, 0.5, 300.0 * DAY]], delimiter=',')

        self.assertEqual(main(['batch', str(self.itinerary_file), str(vectors), '-o', str(output)]), 0)

        with open(output, newline='') as f:
            rows = list(csv.reader(f))
        self.assertEqual(rows[0][0], 'total_delta_v')
        self.assertEqual(len(rows), 3)
        dvs = [float(v) for v in rows[1]]
        assert_allclose(dvs[0], sum(dvs[1:]))
        assert_allclose(dvs[1], 0.5)

    def test_batch_skips_invalid_rows(self):
        """A row with a negative time of flight is written as NaN and the rest still run."""
        vectors = self.tmpdir / "vectors.csv"
        output = self.tmpdir / "dvs.csv"
        np.savetxt(vectors, [[7000.0, 0.5, 0.0, 0.5, 0.4, -250.0 * DAY],
                             [7100.0, 0.2, 0.3, 0.5, 0.5, 300.0 * DAY]], delimiter=',')

        with self.assertLogs('mgadsm', level='WARNING') as cm:
            status = main(['batch', str(self.itinerary_file), str(vectors), '-o', str(output)])

        self.assertEqual(status, 0)
        self.assertIn("Skipping design vector", cm.output[0])
        with open(output, newline='') as f:
            rows = list(csv.reader(f))
        self.assertEqual(len(rows), 3)
        self.assertTrue(np.isnan(float(rows[1][0])))
        assert_allclose(float(rows[2][1]), 0.2)


if __name__ == '__main__':
    unittest.main()
