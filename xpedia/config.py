from __future__ import annotations

from dataclasses import dataclass

from . import __version__


@dataclass
class AppConfig:
    language: str = "en"
    tick_interval: float = 0.2
    results_percent: int = 20
    results_limit: int = 10
    timeout: float = 15.0
    debug: bool = False
    user_agent: str = f"xpedia/{__version__} (terminal encyclopedia reader)"

    @property
    def api_url(self) -> str:
        return f"https://{self.language}.wikipedia.org/w/api.php"

    @property
    def detail_percent(self) -> int:
        return 100 - self.results_percent
