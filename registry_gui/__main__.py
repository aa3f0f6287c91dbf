"""
Module entrypoint for the community registry GUI.

Lets `python -m registry_gui` start the application when the gui-script
wrapper is not installed.
"""

from __future__ import annotations

from registry_gui.app import main

if __name__ == "__main__":
    raise SystemExit(main())
