"""
The `simulate` module contains functions to simulate sampled-data closed loops
of `NMPCProblem` plants with `Controller` instances, integrating the plant with
`scipy.integrate.solve_ivp` between sampling instants.

---

* [`simulate`](simulate/simulate#simulate):
    Simulate a sampled-data closed loop over a fixed time interval.

* [`save_simulation`](simulate/simulate#save_simulation):
    Save simulation results to a csv file.
"""

from .simulate import simulate, save_simulation
