"""esb command line interface."""
