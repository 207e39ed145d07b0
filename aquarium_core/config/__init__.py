"""Configuration package for the aquarium simulation.

Domain constants are grouped by concern, one module per subsystem:

- pet: health bounds, thresholds and decay/restore rates
- usage: restriction limit defaults, alert ratios and polling cadence
- water: turbidity rates, level thresholds and weekly reset schedule
- behavior: fish motion tables, tank bounds and timer intervals
- defaults: default settings, game stats and aquarium config values
"""
