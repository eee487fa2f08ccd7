"""Schema migrations for the RobOct database."""
