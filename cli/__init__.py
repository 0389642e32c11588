"""Developer command line interface for the workout engine."""
