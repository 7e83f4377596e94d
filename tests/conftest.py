import logging
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import pytest

from incl.config.model import EngineOptions
from incl.host import process_text
from incl.types import ResolvedUnit

# Импорт из унифицированной инфраструктуры
from tests.infrastructure.file_utils import write_tree


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """Корень исходников: все тестовые файлы создаются под ним."""
    root = tmp_path / "site"
    root.mkdir()
    return root


@pytest.fixture
def render_unit(site: Path) -> Callable[..., ResolvedUnit]:
    """
    Разворачивает текст как содержимое site/<name>.

    Ключевые аргументы, кроме name и data, передаются в EngineOptions.
    """
    def _render(text: str, name: str = "index.html", data: Optional[Mapping[str, Any]] = None, **options: Any) -> ResolvedUnit:
        return process_text(text, site / name, EngineOptions(**options), base=site, data=data)
    return _render


@pytest.fixture
def render(render_unit) -> Callable[..., str]:
    """То же, что render_unit, но возвращает только текст."""
    def _render(text: str, **kwargs: Any) -> str:
        return render_unit(text, **kwargs).contents
    return _render


@pytest.fixture
def files(site: Path) -> Callable[..., Path]:
    """Создаёт файлы под site: files({"a.html": "..."})."""
    def _files(mapping) -> Path:
        return write_tree(site, mapping)
    return _files



@pytest.fixture(autouse=True)
def _reset_incl_logging():
    # CLI вешает обработчик на логгер "incl"; между тестами он не нужен
    yield
    logger = logging.getLogger("incl")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
