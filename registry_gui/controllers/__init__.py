"""Toolkit-free view controllers driven by the Qt redraw tick."""
