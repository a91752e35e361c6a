"""Adapters binding the form builder to host frameworks."""
