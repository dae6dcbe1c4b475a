"""Command line interface for rdfSesame."""
