"""
Name-based classification strategies.

Every heuristic that maps a name (component, feature, journey goal) to a
category goes through the ``Classifier`` interface, so a rule table can be
replaced by a different classifier without touching graph assembly.

The bundled ``SubstringClassifier`` is a first-match rule table: rules are
checked in order and the first rule with any keyword contained in the
signature wins. These are low-confidence heuristics.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

Rule = Tuple[Tuple[str, ...], str]


class Classifier(ABC):
    """Maps a signature string to a category label."""

    @abstractmethod
    def classify(self, signature: str) -> Optional[str]:
        """Return the category for ``signature`` (or the fallback)."""


class SubstringClassifier(Classifier):
    """First-match keyword table."""

    def __init__(self, rules: Sequence[Rule], fallback: Optional[str] = None,
                 case_sensitive: bool = False):
        self.rules = list(rules)
        self.fallback = fallback
        self.case_sensitive = case_sensitive

    def classify(self, signature: str) -> Optional[str]:
        text = signature if self.case_sensitive else signature.lower()
        for keywords, category in self.rules:
            if any(keyword in text for keyword in keywords):
                return category
        return self.fallback


# =============================================================================
# DEFAULT RULE TABLES
# =============================================================================

RESPONSIBILITY = SubstringClassifier([
    (("list",), "Display and manage collection of items"),
    (("form",), "Collect and validate user input"),
    (("dashboard",), "Provide overview and key metrics"),
    (("profile",), "Display and manage user information"),
    (("header",), "Provide navigation and app context"),
    (("footer",), "Display supplementary information"),
    (("modal", "dialog"), "Present focused interaction"),
    (("button",), "Trigger user actions"),
    (("input",), "Accept user input"),
    (("card",), "Display grouped information"),
])

# Feature names are matched case-sensitively so "UI" doesn't match "build".
FEATURE_DOMAIN = SubstringClassifier([
    (("User", "Auth"), "User Management"),
    (("Todo", "Task"), "Task Management"),
    (("Dashboard", "Analytics"), "Analytics"),
    (("UI", "Infrastructure"), "Infrastructure"),
], fallback="General", case_sensitive=True)

DATA_FLOW_CLUSTER = SubstringClassifier([
    (("todo", "task"), "Task Management"),
    (("user", "profile"), "User Management"),
    (("dashboard",), "Analytics"),
], fallback="General")

JOURNEY_NAME = SubstringClassifier([
    (("Login",), "User Login Journey"),
    (("Register",), "User Registration Journey"),
    (("TodoList",), "Task Management Journey"),
    (("Dashboard",), "Dashboard Overview Journey"),
    (("Profile",), "Profile Management Journey"),
    (("CreateTodo",), "Task Creation Journey"),
    (("Settings",), "Settings Configuration Journey"),
], case_sensitive=True)

JOURNEY_GOAL = SubstringClassifier([
    (("create",), "Create a new item"),
    (("edit",), "Edit existing item"),
    (("delete",), "Remove an item"),
    (("list",), "View and manage items"),
    (("dashboard",), "Get overview of system state"),
    (("profile",), "Manage user information"),
], fallback="Complete user task")

JOURNEY_VALUE = SubstringClassifier([
    (("create", "add"), "Enables users to add new data to the system, expanding business capabilities"),
    (("manage", "edit"), "Provides control and flexibility over business data"),
    (("view", "overview"), "Offers insights and visibility into business operations"),
    (("delete", "remove"), "Maintains data hygiene and system efficiency"),
], fallback="Supports business operations and user productivity")

DATA_OPERATION = SubstringClassifier([
    (("create", "add"), "create"),
    (("edit", "update"), "update"),
    (("delete", "remove"), "delete"),
    (("validate",), "validate"),
], fallback="read")

DATA_ENTITY = SubstringClassifier([
    (("todo", "task"), "Task"),
    (("user",), "User"),
    (("profile",), "Profile"),
], fallback="data")

ENTRY_POINT = SubstringClassifier([
    (("page", "view", "screen", "dashboard", "home"), "route"),
    (("form",), "form"),
    (("list",), "list"),
])
