"""Frame formats exported by the dashboard engine."""
