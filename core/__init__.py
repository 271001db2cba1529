"""Core services for notevault: the virtual filesystem and chat."""
