"""
Global constants for the k-omega SST closure.

This module defines constants used throughout the codebase to ensure
consistency in array shapes, indexing and numerical floors.
"""

# Number of ghost cell layers in each direction
# Green-Gauss gradients and the two-point diffusion stencil need one layer
NGHOST = 1

# Gradient array components for the closure's primary variables
U_IDX = 0      # x-velocity
V_IDX = 1      # y-velocity
K_IDX = 2      # turbulent kinetic energy
OMEGA_IDX = 3  # specific dissipation rate

# Numerical floors (guards, never reported as errors)
SMALL = 1e-15
Y_FLOOR = 1e-12          # wall distance
OMEGA_FLOOR = 1e-12      # omega in denominators
CD_FLOOR = 1e-10         # cross-diffusion in the F1 argument

# Default bounding floors applied after the transport solves
K_MIN = 1e-15
OMEGA_MIN = 1e-10

# Coefficient of the reporting-only dissipation rate: epsilon = 0.09 k omega
EPSILON_COEFF = 0.09
