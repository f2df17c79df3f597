"""candtrack: collect, reconcile and audit US federal candidate data."""
