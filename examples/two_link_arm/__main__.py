import argparse as ap
import os

import numpy as np
from matplotlib import pyplot as plt

from cgmres import simulate
from cgmres.multiple_shooting import MultipleShootingWithSaturation
from cgmres.problem import TwoLinkArm
from cgmres.saturation import ControlInputSaturationSequence

from examples.common_utilities import plotting

from examples.two_link_arm import example_config as config


parser = ap.ArgumentParser()
parser.add_argument('-s', '--show_plots', action='store_true',
                    help="Show plots at runtime, in addition to saving.")
args = parser.parse_args()

# Swing the arm up from hanging down to balancing upright
ocp = TwoLinkArm(**config.params)
saturation = ControlInputSaturationSequence(config.saturations)
controller = MultipleShootingWithSaturation(ocp, saturation,
                                            **config.controller_kwargs)

t0 = config.t_span[0]
sol = controller.initialize(t0, config.x0, config.uc_guess,
                            **config.initialize_kwargs)
if not sol.success:
    raise RuntimeError(f"Could not initialize {controller}: {sol.message}")

print(f"\nInitial controls and constraint multipliers: {sol.uc}")
print(f"Initial dummy variables: {sol.dummy}")
print(f"Initial saturation multipliers: {sol.multiplier}\n")

sim, status = simulate.simulate(ocp, controller, config.x0, config.t_span,
                                config.sampling_period, **config.sim_kwargs)

print(f"\nFinal state: {sim['x'][:, -1]}")
print(f"Mean optimality error: {np.mean(sim['error']):1.2e}")
print(f"Mean update time: {1000. * np.mean(sim['comp_time']):1.3f} ms")

# Save data and figures
simulate.save_simulation(sim, os.path.join(config.data_dir,
                                           'two_link_arm.csv'))

figs = {'closed_loop': plotting.plot_closed_loop(
    sim, saturation=saturation,
    x_labels=('$q_1$', '$q_2$', r'$\dot q_1$', r'$\dot q_2$'),
    u_labels=(r'$\tau_1$', r'$\tau_2$'), subtitle=str(controller))}
plotting.save_fig_dict(figs, config.fig_dir)

if args.show_plots:
    plt.show()
