"""
Nonlinear model predictive control with the multiple shooting
continuation/GMRES method and elimination of control input saturation.

Modules
-------
problem
    Template and example plant/cost models.
saturation
    Box constraints on components of the control-and-constraint vector.
horizon
    Receding horizon length schedule.
gmres
    Matrix-free GMRES and its residual equation interface.
initialize
    Zero-horizon solver used to initialize the controller.
multiple_shooting
    The continuation controller.
controls
    Sampled-data controller template.
simulate
    Closed-loop simulation.
utilities
    Finite differences, input checking and data output.
"""

__version__ = '0.1.0'
