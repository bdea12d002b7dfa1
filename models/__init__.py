"""
Models package for the Deadlock Detection Simulator.
Contains the process FSA, resources, simulations and their registry.
"""
