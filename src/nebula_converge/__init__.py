"""nebula-converge - Reconcile declared resources with OpenNebula."""
__version__ = "0.1.0"
