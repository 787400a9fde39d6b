import os

import numpy as np


# Directories where data and figures will be saved
main_dir = os.path.join('examples', 'two_link_arm')
data_dir = os.path.join(main_dir, 'data')
fig_dir = os.path.join(main_dir, 'figures')

for directory in [data_dir, fig_dir]:
    os.makedirs(directory, exist_ok=True)

# Changes to default problem parameters
params = {}

# Box constraints as (index, lb, ub, weight)
saturations = [(1, -10., 10., 0.001)]

# Settings of the continuation controller
controller_kwargs = {'horizon_max_length': 0.5,
                     'alpha': 1.,
                     'n_nodes': 50,
                     'difference_increment': 1e-06,
                     'zeta': 1000.,
                     'kmax': 5}

# Keyword arguments for the zero-horizon solver
initialize_kwargs = {'convergence_radius': 1e-06, 'max_iterations': 50,
                     'verbose': 1}

# Initial condition, hanging down at rest, and guess of the initial controls
x0 = np.zeros(4)
uc_guess = np.full(2, 0.1)

# Simulation time interval and sampling period
t_span = (0., 10.)
sampling_period = 0.001

# Keyword arguments for closed-loop simulation
sim_kwargs = {'atol': 1e-08, 'rtol': 1e-06, 'method': 'RK45'}
