"""
Retransmission Heatmap Visualization

This module generates 2D heatmaps of the retransmission overhead over
(loss probability, corruption probability), one panel per window size.
"""

import os
from typing import Dict, List, Optional, Tuple

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from config import PLOTS_DIR


METRIC_LABELS = {
    'retransmission_rate': 'Retransmissions per delivered message',
    'efficiency': 'Efficiency (payload bytes / wire bytes)',
    'latency_mean': 'Mean delivery latency'
}


class RetransmissionHeatmap:
    """
    Generates heatmaps of a sweep metric as f(loss, corrupt).

    Attributes:
        df: Sweep results, one row per run
    """

    def __init__(
        self,
        results: Optional[List[Dict]] = None,
        csv_file: Optional[str] = None
    ):
        """
        Initialize heatmap generator.

        Args:
            results: List of result dictionaries
            csv_file: Path to CSV file with results
        """
        if results:
            self.df = pd.DataFrame(results)
        elif csv_file:
            self.df = pd.read_csv(csv_file)
        else:
            self.df = pd.DataFrame()

        if 'error' in self.df.columns:
            self.df = self.df[self.df['error'].isna()]

    @property
    def window_sizes(self) -> List[int]:
        return sorted(self.df['window_size'].unique().tolist())

    def pivot(self, window_size: int, metric: str = 'retransmission_rate') -> pd.DataFrame:
        """
        Mean of metric per (corrupt, loss) cell for one window size.

        Rows are corruption probabilities (highest at top), columns are loss
        probabilities.
        """
        subset = self.df[self.df['window_size'] == window_size]
        table = subset.pivot_table(
            index='corrupt_prob',
            columns='loss_prob',
            values=metric,
            aggfunc='mean'
        )
        return table.sort_index(ascending=False)

    def plot(
        self,
        output_file: Optional[str] = None,
        metric: str = 'retransmission_rate',
        title: str = "Retransmission overhead vs channel loss and corruption",
        figsize: Tuple[int, int] = None,
        cmap: str = "viridis"
    ) -> str:
        """
        Generate and save one heatmap panel per window size.

        Args:
            output_file: Output file path (auto-generated if None)
            metric: Result column to plot
            title: Figure title
            figsize: Figure size (width, height)
            cmap: Colormap name

        Returns:
            Path to saved figure
        """
        if self.df.empty:
            raise ValueError("No results to plot")

        windows = self.window_sizes
        figsize = figsize or (5 * len(windows), 4.5)
        fig, axes = plt.subplots(1, len(windows), figsize=figsize, squeeze=False)

        for ax, window_size in zip(axes[0], windows):
            table = self.pivot(window_size, metric)
            sns.heatmap(
                table,
                annot=True,
                fmt='.2f',
                cmap=cmap,
                ax=ax,
                cbar_kws={'label': METRIC_LABELS.get(metric, metric)}
            )
            ax.set_title(f"W = {window_size}")
            ax.set_xlabel("Loss probability")
            ax.set_ylabel("Corruption probability")

        fig.suptitle(title, fontsize=14, fontweight='bold')
        fig.tight_layout()

        if output_file is None:
            output_file = os.path.join(PLOTS_DIR, f'{metric}_heatmap.png')
        out_dir = os.path.dirname(output_file)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)

        fig.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)

        return output_file

    def summary_matrix(self, metric: str = 'retransmission_rate') -> np.ndarray:
        """Stack every window's pivot table into a (W, corrupt, loss) array."""
        return np.stack([self.pivot(w, metric).to_numpy() for w in self.window_sizes])
