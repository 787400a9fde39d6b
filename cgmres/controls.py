"""
The `controls` module contains the `Controller` template class for sampled-data
feedback controllers driven by `simulate.simulate`. The continuation controller
`multiple_shooting.MultipleShootingWithSaturation` is a subclass, and
`ConstantControl` is a trivial example used for testing and for simulating
uncontrolled systems.
"""

import numpy as np


class Controller:
    """
    Base class for implementing a sampled-data state feedback controller. At
    each sampling instant `t` the simulator applies the currently held command
    `self(x)` over `[t, t + dt)` and calls `update`, which prepares the command
    held from `t + dt`.
    """
    def __init__(self, *args, **kwargs):
        pass

    def __str__(self):
        return type(self).__name__

    def __call__(self, x):
        """
        Return the currently held control command.

        Parameters
        ----------
        x : (n_states,) array
            Current state. Ignored by controllers which hold their command
            between sampling instants.

        Returns
        -------
        u : (n_controls,) array
            Control command.
        """
        raise NotImplementedError

    def update(self, t, dt, x):
        """
        Advance the controller from the sampling instant `t` to `t + dt`.

        Parameters
        ----------
        t : float
            Current time.
        dt : float
            Sampling period, the time until the next call to `update`.
        x : (n_states,) array
            Current state.

        Returns
        -------
        u : (n_controls,) array
            Control command to hold from `t + dt` until the next update.
        """
        raise NotImplementedError


class ConstantControl(Controller):
    """A `Controller` subclass which returns a single constant value for all
    states, used for some unit tests and for simulating uncontrolled systems."""
    def __init__(self, u):
        """
        Parameters
        ----------
        u : (n_controls,) array
            The constant value to return for all state inputs.
        """
        self.u = np.reshape(u, -1).astype(float)
        self.n_controls = self.u.shape[0]

    def __call__(self, x):
        return self.u.copy()

    def update(self, t, dt, x):
        return self.u.copy()
