"""ICS parsing, recurrence resolution and run-date projection."""
