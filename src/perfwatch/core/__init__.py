"""Core domain: models, aggregation routines and collectors."""
