import matplotlib.pyplot as plt
import numpy as np

from ..layout import ParameterLayout


def plot_prior_marginals(params, layout: ParameterLayout, bins: int = 40, title=None):
    """Histogram of every parameter column of a particle matrix"""
    params = np.atleast_2d(params)
    names = layout.column_names()
    n = len(names)
    ncols = min(n, 4) or 1
    nrows = max(int(np.ceil(n / ncols)), 1)
    fig, axes = plt.subplots(nrows, ncols, figsize=(3.5*ncols, 2.8*nrows), squeeze=False)
    for k, ax in enumerate(axes.ravel()):
        if k >= n:
            ax.axis("off")
            continue
        ax.hist(params[:, k], bins=bins, color="steelblue", alpha=0.8)
        ax.set_title(names[k])
        ax.grid(alpha=0.25)
    if title:
        fig.suptitle(title)
    fig.tight_layout()
    return fig, axes


def plot_fit(Y, simulated, location: int = 0, title=None):
    """Observed vs simulated counts for one location"""
    fig, ax = plt.subplots(figsize=(8,4.5))
    ax.plot(np.asarray(Y)[:, location], lw=2, label="Observed")
    ax.plot(np.asarray(simulated)[:, location], lw=2, linestyle="--", label="Simulated")
    if title:
        ax.set_title(title)
    ax.set_xlabel("Time point")
    ax.set_ylabel("Cases")
    ax.legend()
    ax.grid(alpha=0.25)
    return ax
