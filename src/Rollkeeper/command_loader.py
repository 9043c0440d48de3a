# src/Rollkeeper/command_loader.py
import importlib
import pkgutil

import Rollkeeper.commands as commands_pkg


def load_all_commands() -> list[str]:
    """Import every module in ``Rollkeeper.commands`` so its commands register.

    Returns the module names, in import order.
    """
    names = [
        info.name
        for info in pkgutil.iter_modules(commands_pkg.__path__, prefix=f"{commands_pkg.__name__}.")
    ]
    for name in names:
        importlib.import_module(name)
    return names
