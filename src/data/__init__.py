"""Price feeds, network parameters and the deployment factory."""
