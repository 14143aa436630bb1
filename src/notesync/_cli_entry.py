"""Console script for notesync; the click commands ship in the ``cli`` extra."""

import importlib.util
import sys


def main():
    if importlib.util.find_spec("click") is None:
        sys.exit("notesync: the command line needs click. "
                 "Run  pip install 'notesync[cli]'  and try again.")
    from .cli import main as cli_main
    cli_main()
