"""
Progressive-PINN package.

Progressive-PINN is a Python package for training physics-informed neural networks
on space-time domains whose time extent grows from round to round. The parameters
learned on a short time window are carried forward as the starting point of the
next, longer window, and the optimization budget shrinks as the curriculum
advances.
"""
