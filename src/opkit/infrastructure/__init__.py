"""I/O adapters: subprocesses, filesystem and template lookup."""
