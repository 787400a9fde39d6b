import numpy as np
import pandas as pd
from scipy.optimize import _numdiff


def check_int_input(n, argname, low=None):
    """
    Convert an input to an int, raising errors if this is not possible without
    likely loss of information or if the int is less than a specified minimum.

    Parameters
    ----------
    n : array_like, size 1
        Input to check.
    argname : str
        How to refer to the argument `n` in error messages.
    low : int, optional
        Minimum value which `n` should take.

    Raises
    ------
    TypeError
        If `n` is not an int or array_like of size 1.
    ValueError
        If `n < low`.

    Returns
    -------
    n : int
        Input `n` converted to an int, if possible.
    """
    if not isinstance(argname, str):
        raise TypeError("argname must be a str")
    if low is not None:
        low = check_int_input(low, 'low')

    try:
        n = np.squeeze(n).astype(np.int64, casting='safe')
        n = int(n)
    except TypeError:
        raise TypeError(f"{argname} must be an int")

    if low is not None and n < low:
        raise ValueError(f"{argname} must be greater than or equal to {low:d}")

    return n


def check_positive_float(a, argname):
    """
    Convert an input to a float and make sure it is strictly positive.

    Parameters
    ----------
    a : array_like, size 1
        Input to check.
    argname : str
        How to refer to the argument `a` in error messages.

    Returns
    -------
    a : float
        Input `a` converted to a float.

    Raises
    ------
    ValueError
        If `a` is not a single finite positive number.
    """
    if np.size(a) != 1:
        raise ValueError(f"{argname} must be a positive float")
    a = float(np.squeeze(a))
    if not np.isfinite(a) or a <= 0.:
        raise ValueError(f"{argname} must be a positive float")
    return a


def check_vector_input(v, n, argname):
    """
    Convert an array_like to a flat float array with a prescribed length.

    Parameters
    ----------
    v : array_like
        Input to check. Any shape with exactly `n` elements is accepted.
    n : int
        Required number of elements.
    argname : str
        How to refer to the argument `v` in error messages.

    Returns
    -------
    v : (n,) array
        A flat copy of `v` with dtype float.

    Raises
    ------
    ValueError
        If `v` does not have `n` elements.
    """
    v = np.array(v, dtype=float).reshape(-1)
    if v.shape[0] != n:
        raise ValueError(f"{argname} must have {n:d} elements, got "
                         f"{v.shape[0]:d}")
    return v


def resize_vector(array, n):
    """
    Reshapes or broadcasts an array_like to a flat array of a specified
    length.

    Parameters
    ----------
    array : array_like
        Array to reshape into shape `(n,)`. Arrays of size 1 are broadcast.
    n : int
        Number of elements desired.

    Returns
    -------
    reshaped_array : (n,) array
        A flat float copy of `array`.

    Raises
    ------
    ValueError
        If the size of `array` is neither 1 nor `n`.
    """
    n = check_int_input(n, "n", low=1)

    array = np.array(array, dtype=float).reshape(-1)
    if array.shape[0] == n:
        return array
    elif array.shape[0] == 1:
        return np.full(n, array[0])
    else:
        raise ValueError("The size of array is not compatible with the desired "
                         f"shape ({n:d},)")


def approx_derivative(fun, x0, method="3-point", rel_step=None, abs_step=None,
                      f0=None, args=(), kwargs={}):
    """
    Compute a finite difference approximation of the derivatives of an
    array-valued function of one vector. Modified from
    `scipy.optimize._numdiff.approx_derivative`.

    If a function maps from $R^n$ to $R^m$, its derivatives form m-by-n matrix
    called the Jacobian, where an element `[i, j]` is a partial derivative of
    `f[i]` with respect to `x[j]`.

    Parameters
    ----------
    fun : callable
        Function of which to estimate the derivatives. The argument `x`
        passed to this function is an ndarray of shape `(n,)`. It must return
        a float or a 1d array_like of shape `(m,)`.
    x0 : (n,) array
        Point at which to estimate the derivatives.
    method : {"3-point", "2-point", "cs"}, optional
        Finite difference method to use:

            * "2-point" - use the first order accuracy forward or backward
                          difference.
            * "3-point" - use central difference
            * "cs" - use a complex-step finite difference scheme. This assumes
                     that the user function is real-valued and can be
                     analytically continued to the complex plane. Otherwise,
                     produces bogus results.
    rel_step : array_like, optional
        Relative step size to use. If `None` (default) the absolute step size is
        computed as `h = rel_step * sign(x0) * max(1, abs(x0))`, with
        `rel_step` being selected automatically.
    abs_step : array_like, optional
        Absolute step size to use. By default relative steps are used; only if
        `abs_step is not None` are absolute steps used.
    f0 : array_like, optional
        If not `None` it is assumed to be equal to `fun(x0)`, in this case
        `fun(x0)` is not called.
    args, kwargs : tuple and dict, optional
        Additional arguments passed to `fun`. Both empty by default.
        The calling signature is `fun(x, *args, **kwargs)`.

    Returns
    -------
    dfdx : (n,) or (m, n) array
        Finite difference approximation of the gradient (scalar `fun`) or of
        the Jacobian matrix.
    """
    if method not in ["2-point", "3-point", "cs"]:
        raise ValueError(f"Unknown method '{method}'. ")

    x0 = np.atleast_1d(np.asarray(x0, dtype=float))

    flatten = [False]

    def fun_wrapped(x):
        f = np.asarray(fun(x, *args, **kwargs))
        if f.ndim < 1:
            flatten[0] = True
        return np.atleast_1d(f)

    if f0 is None:
        f0 = fun_wrapped(x0)
    else:
        if np.ndim(f0) < 1:
            flatten[0] = True
        f0 = np.atleast_1d(f0)

    if abs_step is None:
        h = _numdiff._compute_absolute_step(rel_step, x0, f0, method)
    else:
        sign_x0 = (x0 >= 0).astype(float) * 2 - 1
        h = np.broadcast_to(abs_step, x0.shape).astype(float)

        # A zero step can happen if x0 is very large; fall back to relative
        dx = ((x0 + h) - x0)
        h_alt = (_numdiff._eps_for_method(x0.dtype, f0.dtype, method)
                 * sign_x0 * np.maximum(1.0, np.abs(x0)))
        h = np.where(dx == 0, h_alt, h)

    dfdx = _dense_difference(fun_wrapped, x0, f0, h, method)

    if flatten[0]:
        return dfdx[0]
    else:
        return dfdx


def _dense_difference(fun, x0, f0, h, method):
    dfdx_T = np.empty(x0.shape[:1] + f0.shape)

    for i in range(x0.shape[0]):
        if method == "2-point":
            x = np.copy(x0)
            x[i] += h[i]
            dx = x[i] - x0[i]  # Recompute dx as exactly representable number.
            df = fun(x) - f0
        elif method == "3-point":
            x1, x2 = np.copy(x0), np.copy(x0)
            x1[i] += h[i]
            x2[i] -= h[i]
            dx = x2[i] - x1[i]
            df = fun(x2) - fun(x1)
        elif method == "cs":
            x = x0.astype("complex128")
            x[i] += h[i] * 1.j
            df = fun(x).imag
            dx = h[i]
        else:
            raise ValueError(f"Unknown method '{method}'. ")

        dfdx_T[i] = np.real(df) / dx

    return np.moveaxis(dfdx_T, 0, -1)


def pack_dataframe(t, x, u, error=None, comp_time=None):
    """
    Collect `numpy` arrays from a closed-loop simulation into a `DataFrame`
    which is convenient for saving as a .csv file.

    Parameters
    ----------
    t : (n_data,) array
        Time values of each data point.
    x : (n_states, n_data) array
        System states at times `t`.
    u : (n_controls, n_data) array
        Control inputs at times `t`.
    error : (n_data,) array, optional
        Optimality error norm of the controller at times `t`.
    comp_time : (n_data,) array, optional
        Computation time of each control update.

    Returns
    -------
    data : DataFrame
        `DataFrame` with `n_data` rows and columns 't', 'x1', ..., 'xn',
        'u1', ..., 'um', and optionally 'error' and 'comp_time'.
    """
    n_states = np.shape(x)[0]
    n_controls = np.shape(u)[0]

    t = np.reshape(t, (1, -1))
    x = np.reshape(x, (n_states, -1))
    u = np.reshape(u, (n_controls, -1))
    data = (t, x, u)
    columns = (['t'] + ['x' + str(i + 1) for i in range(n_states)]
               + ['u' + str(i + 1) for i in range(n_controls)])

    for name, extra in (('error', error), ('comp_time', comp_time)):
        if extra is not None:
            data = data + (np.reshape(extra, (1, -1)),)
            columns.append(name)

    data = np.vstack(data).T

    return pd.DataFrame(data, columns=columns)


def unpack_dataframe(data):
    """
    Extract `numpy` `ndarray`s from a `DataFrame` formatted by
    `pack_dataframe`.

    Parameters
    ----------
    data : DataFrame
        `DataFrame` with `n_data` rows and columns 't', 'x1', ..., 'xn',
        'u1', ..., 'um', and optionally 'error' and 'comp_time'.

    Returns
    -------
    sim : dict
        Dict with keys 't', 'x', 'u', 'error', 'comp_time'. `x` and `u` are
        arranged by (dimension, time); missing optional columns are `None`.
    """
    if not isinstance(data, pd.DataFrame):
        raise TypeError('data must be a DataFrame')

    x_cols = [c for c in data.columns if c.startswith('x')]
    u_cols = [c for c in data.columns if c.startswith('u')]

    sim = {'t': data['t'].to_numpy(),
           'x': data[x_cols].to_numpy().T,
           'u': data[u_cols].to_numpy().T}
    for name in ('error', 'comp_time'):
        sim[name] = data[name].to_numpy() if name in data.columns else None

    return sim


def save_data(data, filepath):
    """
    Save a closed-loop simulation to a csv file. A file saved in this format
    can be recovered by `load_data`.

    Parameters
    ----------
    data : dict or DataFrame
        Either a `DataFrame` produced by `pack_dataframe` or a dict with keys
        't', 'x', 'u', and optionally 'error' and 'comp_time'.
    filepath : path-like
        Where the csv file should be saved.
    """
    if isinstance(data, dict):
        data = pack_dataframe(data['t'], data['x'], data['u'],
                              error=data.get('error'),
                              comp_time=data.get('comp_time'))
    data.to_csv(filepath, index=False)


def load_data(filepath):
    """
    Load a closed-loop simulation saved by `save_data`.

    Parameters
    ----------
    filepath : path-like
        Where the csv file is saved.

    Returns
    -------
    sim : dict
        See `unpack_dataframe`.
    """
    return unpack_dataframe(pd.read_csv(filepath))
