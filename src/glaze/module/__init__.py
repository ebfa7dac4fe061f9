from .module import Module, StageBlock
from .registry import ModuleRegistry
