from .config import Config
from .project_config import ProjectConfig
from .generator import generate, GenerationResult
