"""Built-in resource definitions."""

from typing import List

from drover.exceptions import NotFoundError
from drover.providers.types import Command, Field, OutputType, ResourceDefinition


SCALAR_TYPES = {"string", "date", "object"}


def default_resource_definitions() -> List[ResourceDefinition]:
    """
    Resources every document can configure providers for.

    Built-in providers serve doc (local-doc), issue (github-issues) and
    release (github-releases). deploy has no built-in provider; it is served
    by providers added with ProviderRegistry.register.
    """
    return [
        ResourceDefinition(
            name="release",
            fields=[
                Field("name", "Release name", "string"),
                Field("date", "Release date", "date"),
                Field("title", "Release title", "string"),
            ],
            commands=[
                Command("get", [], "[]release"),
                Command("search", ["text"], "[]release"),
                Command("describe", ["name"], "object"),
            ],
        ),
        ResourceDefinition(
            name="issue",
            fields=[
                Field("name", "Issue name", "string"),
                Field("title", "Issue title", "string"),
                Field("type", "Issue type", "string"),
                Field("state", "Issue state", "string"),
                Field("date", "Issue creation date", "date"),
            ],
            commands=[
                Command("get", [], "[]issue"),
                Command("create", [], "issue"),
            ],
        ),
        ResourceDefinition(
            name="doc",
            fields=[
                Field("name", "Name", "string"),
                Field("author", "Author", "string"),
                Field("location", "Location", "string"),
                Field("date", "Last updated date", "date"),
            ],
            commands=[
                Command("get", [], "[]doc"),
                Command("search", ["text"], "[]doc"),
            ],
        ),
        ResourceDefinition(
            name="deploy",
            fields=[
                Field("name", "Name", "string"),
                Field("version", "Version", "string"),
                Field("instances", "Number of instances", "string"),
                Field("type", "Instance type", "string"),
            ],
            commands=[
                Command("get", [], "[]deploy"),
                Command("describe", [], "object"),
                Command("update", [], "deploy"),
            ],
        ),
    ]


def get_resource_definition(definitions: List[ResourceDefinition], name: str) -> ResourceDefinition:
    for definition in definitions:
        if definition.name == name:
            return definition
    raise NotFoundError(f"could not find resource definition for {name}")


def get_output_type(definitions: List[ResourceDefinition], type_name: str) -> OutputType:
    """Resolve ``[]name`` / ``name`` against the scalar types and the definitions."""
    is_array = type_name.startswith("[]")
    if is_array:
        type_name = type_name[2:]

    if type_name in SCALAR_TYPES:
        return OutputType(type_name, is_array)

    definition = get_resource_definition(definitions, type_name)
    return OutputType(type_name, is_array, list(definition.fields))
