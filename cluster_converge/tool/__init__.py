"""Command line tools for cluster-converge."""
