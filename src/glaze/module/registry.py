import os

from .module import Module


class ModuleRegistry:
    """
    Finds modules by name, either registered in memory or stored as
    `Module_<name>.txt` files in one of the search paths.
    """

    FILE_PREFIX = "Module_"
    EXTENSION = ".txt"

    search_paths: list[str]
    _modules: dict[str, Module]

    def __init__(self, search_paths: list[str] = None) -> None:
        self.search_paths = list(search_paths or [])
        self._modules = {}

    def add(self, module: Module):
        self._modules[module.name] = module
        return module

    def add_text(self, name: str, text: str):
        return self.add(Module.from_text(name, text))

    def load(self, name: str) -> Module | None:
        module = self._modules.get(name)
        if module is not None:
            return module

        path = self.find_file(name)
        if path is None:
            return None

        with open(path, encoding="utf-8") as f:
            return self.add(Module.from_text(name, f.read()))

    def find_file(self, name: str) -> str | None:
        file_name = self.FILE_PREFIX + name + self.EXTENSION
        for folder in self.search_paths:
            path = os.path.join(folder, file_name)
            if os.path.isfile(path):
                return path
        return None
