from collections import namedtuple

import numpy as np

from cgmres.utilities import check_int_input, check_positive_float


ControlInputSaturation = namedtuple('ControlInputSaturation',
                                    ['index', 'lb', 'ub', 'weight'])
ControlInputSaturation.__doc__ = """
Box constraint `lb <= uc[index] <= ub` on one component of the
control-and-constraint vector. `weight` is the positive weight of the dummy
variable in the cost, which keeps the dummy variable away from zero."""


class ControlInputSaturationSequence:
    """
    Ordered collection of `ControlInputSaturation` box constraints. Each entry
    is enforced through the equality
    `(uc[index] - mid)**2 - half_range**2 + dummy**2 = 0`, with
    `mid = (lb + ub) / 2` and `half_range = (ub - lb) / 2`.
    """
    def __init__(self, saturations=()):
        """
        Parameters
        ----------
        saturations : iterable of tuples, optional
            Initial `(index, lb, ub, weight)` entries, appended in order.
        """
        self._entries = []
        self._update_arrays()
        for saturation in saturations:
            self.append(*saturation)

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, j):
        return self._entries[j]

    def __repr__(self):
        return f"{type(self).__name__}({self._entries!r})"

    def append(self, index, lb, ub, weight):
        """
        Add a box constraint on one component of the control-and-constraint
        vector.

        Parameters
        ----------
        index : int
            Component of the control-and-constraint vector to constrain.
        lb : float
            Lower bound.
        ub : float
            Upper bound. Must be strictly greater than `lb`.
        weight : float
            Positive weight on the dummy variable.

        Raises
        ------
        ValueError
            If `index` is negative, `lb >= ub`, or `weight <= 0`.
        """
        index = check_int_input(index, 'index', low=0)
        lb, ub = float(lb), float(ub)
        if not lb < ub:
            raise ValueError("Saturation lower bound lb must be less than the "
                             "upper bound ub")
        weight = check_positive_float(weight, 'weight')

        self._entries.append(ControlInputSaturation(index, lb, ub, weight))
        self._update_arrays()

    def _update_arrays(self):
        self._indices = np.array([s.index for s in self._entries], dtype=int)
        self._lb = np.array([s.lb for s in self._entries], dtype=float)
        self._ub = np.array([s.ub for s in self._entries], dtype=float)
        self._weights = np.array([s.weight for s in self._entries], dtype=float)

    @property
    def dim_saturation(self):
        """Number of saturated components."""
        return len(self._entries)

    def index(self, j):
        return self._entries[j].index

    def min(self, j):
        return self._entries[j].lb

    def max(self, j):
        return self._entries[j].ub

    def weight(self, j):
        return self._entries[j].weight

    @property
    def indices(self):
        """`(dim_saturation,)` int array of constrained components."""
        return self._indices

    @property
    def lb(self):
        return self._lb

    @property
    def ub(self):
        return self._ub

    @property
    def weights(self):
        return self._weights

    @property
    def mid(self):
        """Midpoints `(lb + ub) / 2` of each box."""
        return (self._lb + self._ub) / 2.

    @property
    def half_range(self):
        """Half widths `(ub - lb) / 2` of each box."""
        return (self._ub - self._lb) / 2.

    def check_dimension(self, n_control_and_constraints):
        """
        Make sure every saturated component exists in a control-and-constraint
        vector of a given length.

        Parameters
        ----------
        n_control_and_constraints : int
            Length of the control-and-constraint vector.

        Raises
        ------
        ValueError
            If any saturation index is out of range.
        """
        if np.any(self._indices >= n_control_and_constraints):
            raise ValueError(f"Saturation indices {self._indices.tolist()} "
                             f"must be less than the control-and-constraint "
                             f"dimension {n_control_and_constraints:d}")

    def dummy_from_control(self, uc, floor=1e-03):
        """
        Positive dummy variables which make the saturation equality hold
        exactly for a given control-and-constraint vector, floored at
        `floor * half_range` when `uc` lies on or outside a bound.

        Parameters
        ----------
        uc : (n_control_and_constraints,) array
            Control-and-constraint vector.
        floor : float, default=1e-03
            Relative lower bound on the returned dummy values.

        Returns
        -------
        dummy : (dim_saturation,) array
            `sqrt(half_range**2 - (uc[indices] - mid)**2)`, floored.
        """
        half_range = self.half_range
        d_sq = half_range ** 2 - (np.asarray(uc)[self._indices] - self.mid) ** 2
        return np.maximum(np.sqrt(np.maximum(d_sq, 0.)), floor * half_range)
