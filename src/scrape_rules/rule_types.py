"""
rule_types.py — структуры данных правил извлечения (только данные, без логики слияния).

Ключевые сущности
-----------------
1) Extractor
   Обёртка над функцией-экстрактором: сама функция + необязательный предикат
   `applies_to(url) -> bool`. Функцию НЕ патчим атрибутами, а заворачиваем.

2) RuleSet
   Упорядоченный список пар (property, [extractors...]).
   Порядок пар = порядок свойств, порядок внутри списка = приоритет экстракторов.

3) InlineRuleGroup
   Группа правил от вызывающего кода на один прогон:
   - rules: property -> extractors (порядок сохраняется)
   - predicate: бывший зарезервированный ключ `test`

Формат "плоского" dict (как его пишут плагины и вызывающий код)
---------------------------------------------------------------
{
  "test": lambda url: "example.com" in url,
  "title": [title_from_og, title_from_h1],
  "image": image_from_logo
}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Union


# Зарезервированный ключ inline-группы: не свойство, а предикат применимости.
TEST_KEY = "test"

ExtractorFn = Callable[..., Any]
Predicate = Callable[[str], bool]

# Элемент списка: голая функция, Extractor или любой непрозрачный rule-объект.
ExtractorEntry = Any
ExtractorList = list[ExtractorEntry]
RuleSet = list[tuple[str, ExtractorList]]
RulePairs = tuple[tuple[str, tuple[ExtractorEntry, ...]], ...]
# Бандл плагина: тот же плоский dict, что и inline-группа (`test` разрешён).
RuleBundle = Mapping[str, Any]


@dataclass(frozen=True)
class Extractor:
    """Extraction function plus an optional URL applicability predicate."""

    fn: ExtractorFn
    applies_to: Optional[Predicate] = None

    def applies(self, url: str) -> bool:
        if self.applies_to is None:
            return True
        return bool(self.applies_to(url))

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.fn(*args, **kwargs)

    @property
    def name(self) -> str:
        return callable_name(self.fn)


def callable_name(fn: Any) -> str:
    """Человекочитаемое имя callable для отчётов (`__qualname__`, у partial — имя func)."""
    if isinstance(fn, Extractor):
        return fn.name
    name = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None)
    if isinstance(name, str) and name:
        return name
    inner = getattr(fn, "func", None)
    if inner is not None and inner is not fn:
        return callable_name(inner)
    return type(fn).__name__


def as_extractor_list(value: Any, *, prop: str) -> tuple[ExtractorEntry, ...]:
    """Single extractor -> one-element tuple; list/tuple -> tuple; anything else is rejected."""
    if isinstance(value, (list, tuple)):
        return tuple(value)
    if callable(value) or isinstance(value, dict):
        return (value,)
    raise ValueError(
        f"rules for property '{prop}' must be an extractor or a list of extractors, "
        f"got {type(value).__name__}"
    )


@dataclass(frozen=True)
class InlineRuleGroup:
    """
    InlineRuleGroup — ad-hoc rules supplied for a single scrape call.

    `predicate` lives apart from `rules`, so a property can never collide
    with the reserved `test` key once the group is parsed.
    """

    rules: RulePairs = ()
    predicate: Optional[Predicate] = None

    @property
    def prop_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.rules)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "InlineRuleGroup":
        """
        Разбор плоского dict: ключ `test` -> predicate, остальные ключи -> свойства.

        Одиночный экстрактор приводится к списку из одного элемента.
        """
        if not isinstance(d, Mapping):
            raise ValueError(f"inline rule group must be a mapping, got {type(d).__name__}")

        predicate = d.get(TEST_KEY)
        if predicate is not None and not callable(predicate):
            raise ValueError(f"'{TEST_KEY}' must be callable, got {type(predicate).__name__}")

        pairs: list[tuple[str, tuple[ExtractorEntry, ...]]] = []
        for key, value in d.items():
            if key == TEST_KEY:
                continue
            if not isinstance(key, str) or not key.strip():
                raise ValueError(f"property name must be a non-empty string, got {key!r}")
            pairs.append((key, as_extractor_list(value, prop=key)))

        return InlineRuleGroup(rules=tuple(pairs), predicate=predicate)

    def to_dict(self) -> dict[str, Any]:
        """Обратно в плоский dict (списки — новые объекты)."""
        out: dict[str, Any] = {name: list(extractors) for name, extractors in self.rules}
        if self.predicate is not None:
            out[TEST_KEY] = self.predicate
        return out


InlineRulesInput = Union[InlineRuleGroup, Mapping[str, Any]]


def as_inline_group(raw: InlineRulesInput) -> InlineRuleGroup:
    if isinstance(raw, InlineRuleGroup):
        return raw
    return InlineRuleGroup.from_dict(raw)


def as_inline_groups(raw: Optional[Iterable[InlineRulesInput]]) -> list[InlineRuleGroup]:
    """Принимает смесь InlineRuleGroup и плоских dict; None -> []."""
    if raw is None:
        return []
    if isinstance(raw, (InlineRuleGroup, Mapping)):
        return [as_inline_group(raw)]
    return [as_inline_group(x) for x in raw]
