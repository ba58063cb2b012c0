"""HTTP surface of the backup subsystem."""
