"""Handler registry.

Handlers are configured by `type` in pipeline YAML files:

```yaml
handlers:
  - type: dom_tagger
    extractions:
      - {selector: "h1", to_field: title}
  - type: language_tagger
    languages: [en, fr]
  - type: script_filter
    restrictions:
      - {field: document.contentType, pattern: "text/.*"}
    script: |
      "confidential" not in content
```

Adding a handler type:
1) subclass DocumentTagger / DocumentFilter / DocumentTransformer
2) call `register_handler(type_name, cls)` at startup (or add it to the static map)
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Type

from ..config.loader import dump_yaml, load_yaml
from ..errors import ConfigurationError
from .base import Handler
from .dom_tagger import DOMTagger
from .language_tagger import LanguageTagger
from .script import ScriptFilter, ScriptTagger, ScriptTransformer

_REGISTRY: Dict[str, Type[Handler]] = {
    DOMTagger.name: DOMTagger,
    LanguageTagger.name: LanguageTagger,
    ScriptTagger.name: ScriptTagger,
    ScriptFilter.name: ScriptFilter,
    ScriptTransformer.name: ScriptTransformer,
}


def register_handler(type_name: str, cls: Type[Handler]) -> None:
    _REGISTRY[type_name] = cls


def list_handler_types() -> List[str]:
    return sorted(_REGISTRY)


def make_handler(cfg: Dict[str, Any]) -> Handler:
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Handler config must be a mapping, got {type(cfg).__name__}")
    type_name = cfg.get("type")
    if not type_name:
        raise ConfigurationError(f"Handler config is missing 'type': {cfg}")
    cls = _REGISTRY.get(type_name)
    if cls is None:
        raise ConfigurationError(
            f"Unknown handler type: {type_name}. Register it in doc_enricher.handlers.registry"
        )
    try:
        return cls.from_config(cfg)
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid config for handler '{type_name}': {e}") from e


def make_handlers(cfgs: Iterable[Dict[str, Any]]) -> List[Handler]:
    return [make_handler(c) for c in cfgs or []]


def handler_to_config(handler: Handler) -> Dict[str, Any]:
    return handler.to_config()


def load_handlers(path: str) -> List[Handler]:
    cfg = load_yaml(path)
    handlers = cfg.get("handlers")
    if handlers is None:
        raise ConfigurationError(f"{path}: missing top-level 'handlers' list")
    if not isinstance(handlers, list):
        raise ConfigurationError(f"{path}: 'handlers' must be a list")
    return make_handlers(handlers)


def save_handlers(handlers: Iterable[Handler], path: str) -> None:
    dump_yaml({"handlers": [handler_to_config(h) for h in handlers]}, path)
