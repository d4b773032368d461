"""
Input facts consumed by the business graph pipeline.

Two producers feed this module, both outside bizgraph:
- the source parser (components, files with imports, data flows)
- the requirement extractor (user stories, capabilities, data entities,
  business rules, personas)

Fact dicts are accepted as produced upstream (camelCase keys such as
``filePath`` or ``userStories``) or in snake_case. Missing optional fields
fall back to empty collections or zero; nothing here rejects malformed data.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from bizgraph.json_utils import safe_load_json, validate_against_schema

logger = logging.getLogger(__name__)

# Top-level shape only; the contents of each list are trusted as-is.
FACTS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "components": {"type": "array"},
        "files": {"type": "array"},
        "dataFlows": {"type": "array"},
        "data_flows": {"type": "array"},
        "businessContext": {"type": "object"},
        "business_context": {"type": "object"},
    },
}


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key's value (camelCase or snake_case)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _name_of(item: Union[str, Dict[str, Any]]) -> str:
    return item if isinstance(item, str) else item.get("name", "")


# =============================================================================
# STRUCTURAL FACTS
# =============================================================================

@dataclass(frozen=True)
class PropFact:
    name: str
    type: str = "unknown"
    is_required: bool = False


@dataclass(frozen=True)
class HookFact:
    name: str
    type: str = "other"


@dataclass(frozen=True)
class ComponentFact:
    """A structural code unit: declared inputs, stateful bindings, child units."""
    name: str
    file_path: str = ""
    type: str = "function"
    props: List[PropFact] = field(default_factory=list)
    hooks: List[HookFact] = field(default_factory=list)
    children: List[str] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)

    def has_hook(self, *names: str) -> bool:
        return any(h.name in names for h in self.hooks)

    def prop_names(self) -> List[str]:
        return [p.name for p in self.props]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComponentFact":
        props = []
        for prop in _pick(data, "props", default=[]):
            if isinstance(prop, str):
                props.append(PropFact(name=prop))
            else:
                props.append(PropFact(
                    name=prop.get("name", ""),
                    type=prop.get("type") or "unknown",
                    is_required=bool(_pick(prop, "isRequired", "is_required", default=False)),
                ))

        hooks = []
        for hook in _pick(data, "hooks", default=[]):
            if isinstance(hook, str):
                hooks.append(HookFact(name=hook))
            else:
                hooks.append(HookFact(name=hook.get("name", ""), type=hook.get("type") or "other"))

        imports = [
            imp if isinstance(imp, str) else imp.get("source", "")
            for imp in _pick(data, "imports", default=[])
        ]

        return cls(
            name=data.get("name", ""),
            file_path=_pick(data, "filePath", "file_path", default=""),
            type=data.get("type") or "function",
            props=props,
            hooks=hooks,
            children=[_name_of(c) for c in _pick(data, "children", default=[])],
            imports=imports,
        )


@dataclass(frozen=True)
class FileFact:
    path: str
    imports: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileFact":
        return cls(
            path=data.get("path", ""),
            imports=[
                imp if isinstance(imp, str) else imp.get("source", "")
                for imp in data.get("imports") or []
            ],
        )


@dataclass(frozen=True)
class DataFlowFact:
    source: str
    target: str
    type: str = "props"
    data: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataFlowFact":
        return cls(
            source=_pick(data, "from", "source", default=""),
            target=_pick(data, "to", "target", default=""),
            type=data.get("type") or "props",
            data=data.get("data"),
        )


class ProjectFacts:
    """Read-only view over the parsed project: components, files and data flows."""

    def __init__(self, components: Iterable[ComponentFact],
                 files: Iterable[FileFact] = (),
                 data_flows: Iterable[DataFlowFact] = ()):
        self.components: List[ComponentFact] = []
        self._by_name: Dict[str, ComponentFact] = {}
        for component in components:
            if component.name in self._by_name:
                logger.debug("Duplicate component fact '%s' ignored", component.name)
                continue
            self._by_name[component.name] = component
            self.components.append(component)

        self.files: List[FileFact] = list(files)
        self._files_by_path = {f.path: f for f in self.files}
        self.data_flows: List[DataFlowFact] = list(data_flows)

    def get_component(self, name: str) -> Optional[ComponentFact]:
        return self._by_name.get(name)

    def file_imports(self, component: ComponentFact) -> List[str]:
        """Import sources visible to a component (its own plus its file's)."""
        imports = list(component.imports)
        file_fact = self._files_by_path.get(component.file_path)
        if file_fact:
            imports.extend(file_fact.imports)
        return imports

    def has_parent(self, component: ComponentFact) -> bool:
        return any(
            other.name != component.name and component.name in other.children
            for other in self.components
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectFacts":
        components: List[ComponentFact] = []
        # Nested child facts are flattened into the component table.
        pending = list(_pick(data, "components", default=[]))
        while pending:
            raw = pending.pop(0)
            if isinstance(raw, str):
                continue
            components.append(ComponentFact.from_dict(raw))
            pending.extend(c for c in raw.get("children") or [] if isinstance(c, dict))

        return cls(
            components=components,
            files=[FileFact.from_dict(f) for f in _pick(data, "files", default=[])],
            data_flows=[DataFlowFact.from_dict(d) for d in _pick(data, "dataFlows", "data_flows", default=[])],
        )


# =============================================================================
# BUSINESS CONTEXT FACTS
# =============================================================================

@dataclass
class UserStory:
    id: str
    title: str = ""
    description: str = ""
    persona: str = ""
    priority: str = "low"
    confidence: float = 0.0
    story_type: str = ""
    business_capability: str = ""
    complexity: str = "simple"
    source_components: List[str] = field(default_factory=list)
    acceptance_criteria: List[str] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserStory":
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            persona=data.get("persona", ""),
            priority=data.get("priority") or "low",
            confidence=float(data.get("confidence") or 0.0),
            story_type=_pick(data, "storyType", "story_type", default=""),
            business_capability=_pick(data, "businessCapability", "business_capability", default=""),
            complexity=data.get("complexity") or "simple",
            source_components=list(_pick(data, "sourceComponents", "source_components", default=[])),
            acceptance_criteria=list(_pick(data, "acceptanceCriteria", "acceptance_criteria", default=[])),
            raw=dict(data),
        )


@dataclass
class BusinessCapability:
    id: str
    name: str = ""
    description: str = ""
    user_stories: List[str] = field(default_factory=list)
    components: List[str] = field(default_factory=list)
    data_entities: List[str] = field(default_factory=list)
    operations: List[Dict[str, Any]] = field(default_factory=list)
    business_value: str = "generic"
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BusinessCapability":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            user_stories=list(_pick(data, "userStories", "user_stories", default=[])),
            components=list(data.get("components") or []),
            data_entities=list(_pick(data, "dataEntities", "data_entities", default=[])),
            operations=list(data.get("operations") or []),
            business_value=_pick(data, "businessValue", "business_value", default="generic"),
            raw=dict(data),
        )


@dataclass
class DataEntity:
    name: str
    attributes: List[str] = field(default_factory=list)
    relationships: List[Dict[str, Any]] = field(default_factory=list)
    operations: List[str] = field(default_factory=list)
    business_purpose: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataEntity":
        return cls(
            name=data.get("name", ""),
            attributes=list(data.get("attributes") or []),
            relationships=list(data.get("relationships") or []),
            operations=list(data.get("operations") or []),
            business_purpose=_pick(data, "businessPurpose", "business_purpose", default=""),
            raw=dict(data),
        )


@dataclass
class BusinessRule:
    id: str
    description: str = ""
    category: str = "workflow"
    implementation: List[str] = field(default_factory=list)
    affected_entities: List[str] = field(default_factory=list)
    conditions: List[str] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BusinessRule":
        return cls(
            id=data.get("id", ""),
            description=data.get("description", ""),
            category=data.get("category") or "workflow",
            implementation=list(data.get("implementation") or []),
            affected_entities=list(_pick(data, "affectedEntities", "affected_entities", default=[])),
            conditions=list(data.get("conditions") or []),
            actions=list(data.get("actions") or []),
            raw=dict(data),
        )


@dataclass
class UserPersona:
    id: str
    name: str = ""
    description: str = ""
    goals: List[str] = field(default_factory=list)
    capabilities: List[str] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPersona":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            goals=list(data.get("goals") or []),
            capabilities=list(data.get("capabilities") or []),
            raw=dict(data),
        )


@dataclass
class BusinessContext:
    """Requirement-side facts; opaque to bizgraph beyond the fields read here."""
    user_stories: List[UserStory] = field(default_factory=list)
    capabilities: List[BusinessCapability] = field(default_factory=list)
    data_model: List[DataEntity] = field(default_factory=list)
    business_rules: List[BusinessRule] = field(default_factory=list)
    personas: List[UserPersona] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "BusinessContext":
        data = data or {}
        return cls(
            user_stories=[UserStory.from_dict(s) for s in _pick(data, "userStories", "user_stories", default=[])],
            capabilities=[BusinessCapability.from_dict(c) for c in data.get("capabilities") or []],
            data_model=[DataEntity.from_dict(e) for e in _pick(data, "dataModel", "data_model", default=[])],
            business_rules=[BusinessRule.from_dict(r) for r in _pick(data, "businessRules", "business_rules", default=[])],
            personas=[UserPersona.from_dict(p) for p in data.get("personas") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_stories": [s.raw for s in self.user_stories],
            "capabilities": [c.raw for c in self.capabilities],
            "data_model": [e.raw for e in self.data_model],
            "business_rules": [r.raw for r in self.business_rules],
            "personas": [p.raw for p in self.personas],
        }


def load_facts_file(facts_path: Union[str, Path]):
    """Load a facts file holding both the project structure and business context.

    Returns:
        (ProjectFacts, BusinessContext)

    Raises:
        JSONValidationError: If the file is not valid JSON or has the wrong shape
        FileNotFoundError: If the file doesn't exist
    """
    data = safe_load_json(facts_path, file_type_description="project facts")
    validate_against_schema(data, FACTS_SCHEMA, "project facts", source=str(facts_path))

    project = ProjectFacts.from_dict(data)
    context = BusinessContext.from_dict(_pick(data, "businessContext", "business_context", default={}))
    logger.info(
        "Loaded %d components, %d files, %d data flows, %d capabilities from %s",
        len(project.components), len(project.files), len(project.data_flows),
        len(context.capabilities), facts_path,
    )
    return project, context
