"""
Algorithms package for the Deadlock Detection Simulator.
Contains resource allocation and deadlock detection implementations.
"""
