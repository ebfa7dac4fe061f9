from glaze.property import Property


class CodeInjectionManager:
    """
    Provides properties contributed by injected code at `[[INJECTION_POINT:<name>]]` markers.
    """

    points: dict[str, list[Property]]
    features: list[str]

    def __init__(
        self, points: dict[str, list[Property]] = None, features: list[str] = None
    ) -> None:
        self.points = points or {}
        self.features = features or []

    def properties_for_injection_point(self, name: str) -> list[Property]:
        return list(self.points.get(name, []))

    def needed_features(self) -> list[str]:
        return list(self.features)
