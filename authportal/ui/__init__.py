"""CustomTkinter auth window: host shell, login surfaces and theme."""
