"""
Interactive 3-D plots of evaluated trajectories.
"""
from pathlib import Path

import numpy as np
import plotly
import plotly.graph_objects as go

from mgadsm.analytic import sample_report_arcs
from mgadsm.constants import KMPAU, MU_SUN
from mgadsm.report import TrajectoryReport

EVENT_SYMBOLS = {
    'departure': 'diamond',
    'dsm': 'x',
    'maneuver': 'cross',
    'flyby': 'circle',
    'rendezvous': 'square',
    'insertion': 'square-open',
    'escape': 'diamond-open',
}


def plot_trajectory(report: TrajectoryReport, num_points: int = 200, mu: float = MU_SUN,
                    title: str = "MGA-DSM trajectory", show: bool = True,
                    filename: str | Path | None = None) -> go.Figure:
    """
    Plot the coast arcs and events of a trajectory report in AU.

    When ``show`` is False the figure is written to ``filename`` (or
    ``outputs/<title>.html`` under the working directory) instead.
    """
    fig = go.Figure(
        layout=dict(
            title=title,
            scene=dict(
                xaxis=dict(title="x (AU)"),
                yaxis=dict(title="y (AU)"),
                zaxis=dict(title="z (AU)"),
                aspectmode="data",
            ),
        ),
    )

    for i, arc in enumerate(sample_report_arcs(report, num_points=num_points, mu=mu)):
        r = arc.positions / KMPAU
        fig.add_trace(go.Scatter3d(
            x=r[:, 0], y=r[:, 1], z=r[:, 2],
            mode="lines",
            name=f"arc {i}",
            line=dict(width=3),
        ))

    for event in report.events:
        if event.kind == 'maneuver' and event.delta_v == 0.0:
            continue
        r = np.asarray(event.position) / KMPAU
        label = f"{event.kind} {event.body}" if event.body else event.kind
        fig.add_trace(go.Scatter3d(
            x=[r[0]], y=[r[1]], z=[r[2]],
            mode="markers",
            name=label,
            marker=dict(size=5, symbol=EVENT_SYMBOLS.get(event.kind, 'circle')),
            hovertext=f"{label}<br>MJD2000 {event.epoch:.2f}<br>dv {event.delta_v:.4f} km/s",
        ))

    fig.add_trace(go.Scatter3d(x=[0.0], y=[0.0], z=[0.0], mode="markers", name="Sun",
                               marker=dict(size=8, color="gold")))

    if show:
        fig.show()
    else:
        if filename is None:
            output_path = Path.cwd() / "outputs"
            output_path.mkdir(exist_ok=True)
            filename = output_path / (title + ".html")
        plotly.offline.plot(fig, filename=Path(filename).as_posix(), auto_open=False)
    return fig
