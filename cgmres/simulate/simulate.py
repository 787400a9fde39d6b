import time

import numpy as np
from scipy.integrate import solve_ivp
from tqdm import tqdm

from cgmres.utilities import check_positive_float, check_vector_input, save_data


def simulate(ocp, controller, x0, t_span, sampling_period, method='RK45',
             atol=1e-08, rtol=1e-06, verbose=True):
    """
    Simulate a sampled-data closed loop. At each sampling instant
    `t[k] = t0 + k * sampling_period` the command currently held by the
    controller is applied to the plant over `[t[k], t[k+1])`, and the
    controller is updated with the state `x(t[k])` to produce the command
    held from `t[k+1]`. This matches continuation controllers, whose update
    advances the solution from `t[k]` to `t[k+1]`.

    Parameters
    ----------
    ocp : `NMPCProblem`
        Plant model implementing `dynamics`.
    controller : `Controller`
        An instance of a `Controller` subclass implementing `__call__` and
        `update`. If the controller has a `get_error` method, its optimality
        error at `(t[k], x(t[k]))` is recorded before every update.
    x0 : (`ocp.n_states`,) array
        Initial state.
    t_span : 2-tuple of floats
        Interval of integration `(t0, tf)`.
    sampling_period : float
        Time between control updates.
    method : string or `OdeSolver`, default='RK45'
        See `scipy.integrate.solve_ivp`.
    atol : float or array_like, default=1e-08
        See `scipy.integrate.solve_ivp`.
    rtol : float or array_like, default=1e-06
        See `scipy.integrate.solve_ivp`.
    verbose : bool, default=True
        Show a progress bar.

    Returns
    -------
    sim : dict
        Simulation results at the sampling instants, containing

            * t : (n_points,) array
                Sampling instants.
            * x : (`ocp.n_states`, n_points) array
                System states at times `t`.
            * u : (`ocp.n_controls`, n_points) array
                Control commands applied from times `t`.
            * error : (n_points,) array
                Optimality error of the controller at times `t`, or NaN if
                the controller has no `get_error` method.
            * comp_time : (n_points,) array
                Wall-clock time in seconds taken by each update.
    status : int
        Reason for algorithm termination:

            * -1: Integration step failed.
            *  0: The simulation successfully reached the end of `t_span`.
    """
    dt = check_positive_float(sampling_period, 'sampling_period')
    t0, tf = float(t_span[0]), float(t_span[-1])
    if tf <= t0:
        raise ValueError("t_span must satisfy t_span[0] < t_span[-1]")

    n_steps = int(np.round((tf - t0) / dt))
    x = check_vector_input(x0, ocp.n_states, 'x0')

    t_rec = t0 + dt * np.arange(n_steps)
    x_rec = np.zeros((ocp.n_states, n_steps))
    u_rec = np.zeros((ocp.n_controls, n_steps))
    err_rec = np.full(n_steps, np.nan)
    time_rec = np.zeros(n_steps)

    get_error = getattr(controller, 'get_error', None)
    status = 0

    for k in tqdm(range(n_steps), disable=not verbose):
        t = t_rec[k]
        x_rec[:, k] = x

        u = np.reshape(controller(x), -1)[:ocp.n_controls]
        u_rec[:, k] = u
        if callable(get_error):
            err_rec[k] = get_error(t, x)

        start_time = time.perf_counter()
        controller.update(t, dt, x)
        time_rec[k] = time.perf_counter() - start_time

        ode_sol = solve_ivp(lambda t, x: ocp.dynamics(t, x, u), (t, t + dt), x,
                            method=method, atol=atol, rtol=rtol)
        if not ode_sol.success:
            status = -1
            n_steps = k + 1
            break

        x = ode_sol.y[:, -1]

    sim = {'t': t_rec[:n_steps], 'x': x_rec[:, :n_steps],
           'u': u_rec[:, :n_steps], 'error': err_rec[:n_steps],
           'comp_time': time_rec[:n_steps]}

    if verbose:
        if status == 0:
            print(f"Simulation reached t = {tf:g} in {n_steps:d} updates, "
                  f"total update time {np.sum(sim['comp_time']):1.2f} s")
        else:
            print(f"Integration step failed at t = {t_rec[n_steps - 1]:g}: "
                  f"{ode_sol.message}")

    return sim, status


def save_simulation(sim, filepath):
    """
    Save the results of `simulate` to a csv file, which can be reloaded with
    `utilities.load_data`.

    Parameters
    ----------
    sim : dict
        Simulation results returned by `simulate`.
    filepath : path-like
        Where the csv file should be saved.
    """
    save_data(sim, filepath)
