"""
The `multiple_shooting` module implements the multiple shooting
continuation/GMRES controller with elimination of control input saturation.

Modules
-------
residuals
    Optimality residuals of the control-and-constraint, state/costate and
    saturation variables.
sweep
    Forward/backward reconstruction of states and costates from prescribed
    shooting defects.
elimination
    Closed-form operations on the saturation dummy variables and multipliers.
workspace
    Per-node trajectory storage and reusable scratch buffers.
controller
    The `MultipleShootingWithSaturation` controller.
"""

from .workspace import Trajectory, ShootingWorkspace
from .controller import MultipleShootingWithSaturation
