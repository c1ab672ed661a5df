"""Click support for the opkit command."""
