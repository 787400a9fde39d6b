import os

import numpy as np
from matplotlib import pyplot as plt


def save_fig_dict(figures, save_dir):
    """
    Save a (possibly nested) dict of figures as .pdf files.

    Parameters
    ----------
    figures : dict
        Each key is a file name and each value is either a
        `matplotlib.figure.Figure` or a dict of the same format, which is saved
        in a subdirectory named by the key.
    save_dir : path_like
        Directory in which to save the figures.
    """
    if not isinstance(figures, dict):
        raise TypeError("figures must be a dict")

    os.makedirs(save_dir, exist_ok=True)

    for fig_name, fig in figures.items():
        if isinstance(fig, plt.Figure):
            plt.figure(fig)
            plt.savefig(os.path.join(save_dir, fig_name + '.pdf'))
        else:
            subdir = os.path.join(save_dir, fig_name)
            save_fig_dict(fig, subdir)


def plot_closed_loop(sim, saturation=None, x_index=None, u_index=None,
                     x_labels=(), u_labels=(), subtitle=None,
                     fig_kwargs={}, plot_kwargs={}):
    """
    Plot the states, controls, and optimality error vs. time for a closed-loop
    simulation with a continuation controller.

    Parameters
    ----------
    sim : dict
        Closed-loop simulation output by `cgmres.simulate.simulate`, with keys

            * 't' : (n_points,) array
                Sampling instants.
            * 'x' : (n_states, n_points) array
                System states at times 't'.
            * 'u' : (n_controls, n_points) array
                Control inputs at times 't'.
            * 'error' : (n_points,) array
                Optimality error of the controller at times 't'.
    saturation : `ControlInputSaturationSequence`, optional
        If provided, the bounds of saturated controls are drawn as dashed
        lines.
    x_index : array_like of ints, default=[0, 1, ..., n_states]
        Indices of which states to plot.
    u_index : array_like of ints, default=[0, 1, ..., n_controls]
        Indices of which controls to plot.
    x_labels : tuple, default=('$x_1$', '$x_2$', ...)
        Tuple of strings specifying how to label plot axes for states.
    u_labels : tuple, default=('$u_1$', '$u_2$', ...)
        Tuple of strings specifying how to label plot axes for controls.
    subtitle : str, optional
        If provided, this string appears in parentheses after the first plot
        title.
    fig_kwargs : dict, optional
        Keyword arguments to pass during figure creation. See
        `matplotlib.pyplot.figure`.
    plot_kwargs : dict, default={'color': 'black'}
        Keyword arguments to pass when generating line plots. See
        `matplotlib.pyplot.plot`.

    Returns
    -------
    fig : `matplotlib.figure.Figure`
        Figure instance with one plot for each state, each control, and the
        optimality error.
    """
    n_states = np.shape(sim['x'])[0]
    n_controls = np.shape(sim['u'])[0]

    if x_index is None:
        x_index = np.arange(n_states)
    x_index = np.reshape(x_index, -1)
    if u_index is None:
        u_index = np.arange(n_controls)
    u_index = np.reshape(u_index, -1)

    n_plots = x_index.shape[0] + u_index.shape[0] + 1

    x_labels = _check_labels(n_states, 'x', *x_labels)
    u_labels = _check_labels(n_controls, 'u', *u_labels)

    plot_kwargs = {'color': 'black', **plot_kwargs}

    fig_kwargs = {'layout': 'constrained', 'figsize': (6.4, n_plots * 1.5),
                  **fig_kwargs}

    fig, axes = plt.subplots(nrows=n_plots, **fig_kwargs)

    t_lim = (sim['t'][0], sim['t'][-1])
    axes[-1].set_xlabel('$t$', fontsize=12)

    if subtitle is not None:
        axes[0].set_title(f'Closed-loop states ({subtitle})', fontsize=14)
    else:
        axes[0].set_title('Closed-loop states', fontsize=14)

    for i, j in enumerate(x_index):
        ax = axes[i]
        ax.plot(sim['t'], sim['x'][j], **plot_kwargs)
        ax.set_xlim(*t_lim)
        ax.set_ylabel(x_labels[j], fontsize=12)

    for i, j in enumerate(u_index):
        ax = axes[x_index.shape[0] + i]
        ax.plot(sim['t'], sim['u'][j], **plot_kwargs)

        if saturation is not None:
            for s in saturation:
                if s.index == j:
                    ax.axhline(s.lb, color='red', linestyle='--')
                    ax.axhline(s.ub, color='red', linestyle='--')

        ax.set_xlim(*t_lim)
        ax.set_ylabel(u_labels[j], fontsize=12)

        if i == 0:
            ax.set_title('Feedback controls', fontsize=14)

    ax = axes[-1]
    ax.plot(sim['t'], sim['error'], **plot_kwargs)
    ax.set_xlim(*t_lim)
    ax.set_yscale('log')
    ax.set_ylabel(r'$\| F \|$', fontsize=12)
    ax.set_title('Optimality error', fontsize=14)

    return fig


def _check_labels(n_labels, backup_label, *labels):
    if len(labels) < n_labels:
        if n_labels == 1:
            labels = [f'${backup_label:s}$']
        else:
            new_labels = tuple(f'${backup_label:s}' + '_{' + f'{i + 1:d}' + '}$'
                               for i in range(n_labels))
            labels = labels + new_labels[len(labels):]

    return labels
