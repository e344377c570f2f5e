"""Web framework integrations. Import the submodule for your framework."""
