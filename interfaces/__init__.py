"""HTTP interface for the Deadlock Detection Simulator."""
