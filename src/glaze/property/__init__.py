from .property import Property, PropertyType, Header
from .implementation import (
    Implementation,
    DirectValue,
    TextureSample,
    PropertyReference,
    GenericFromTemplate,
)
