"""
The `problem` module contains the template class `NMPCProblem` used to define
the plant model and cost of a nonlinear model predictive control problem,
together with some concrete implementations.

Classes
-------
ProblemParameters
    Utility class to store and update cost function and system dynamics
    parameters.
NMPCProblem
    Template superclass defining dynamics, costs, constraints and the
    Hamiltonian derivatives needed by the continuation solver.
LinearQuadraticProblem
    Linear dynamics with a quadratic tracking cost.
TwoLinkArm
    Fully actuated planar two-link arm with gravity.
"""

from .parameters import ProblemParameters
from .problem import NMPCProblem
from .linear_quadratic import LinearQuadraticProblem
from .two_link_arm import TwoLinkArm
