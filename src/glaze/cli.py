import argparse
import copy
import time
import os

from glaze.module import ModuleRegistry
from glaze.project import Config, ProjectConfig, generate
from glaze.project.project_config import TEMPLATE_EXTENSION
from glaze.property import Header, Property
from glaze.property.implementation import linked_property_name
from glaze.template.program import Program
from glaze.template.template import Template

SHADER_EXTENSION = ".shader"


def load_project(args) -> ProjectConfig:
    project = ProjectConfig()
    if args.project:
        project.read_json_file(args.project, args.profile)
    return project


def load_config(args, project: ProjectConfig) -> Config:
    config = Config()
    for feature in project.features:
        config.toggle_feature(feature, True)
    if args.config:
        if not os.path.isfile(args.config):
            raise Exception("Invalid path to config file")
        config.read_from_json_file(args.config)
    for feature in args.features:
        config.toggle_feature(feature, True)
    return config


def list_templates(args, project: ProjectConfig) -> list[str]:
    if not args.inputs:
        templates = project.find_templates()
        if not templates:
            raise Exception("Template path argument or project file was expected")
        return templates

    templates = []
    for path in args.inputs:
        if not os.path.exists(path):
            raise Exception(f'Invalid path to template or folder "{path}"')

        if os.path.isfile(path):
            templates.append(path)
        else:
            for entry in sorted(os.listdir(path)):
                file_path = os.path.join(path, entry)
                if (
                    os.path.isfile(file_path)
                    and entry.endswith(TEMPLATE_EXTENSION)
                    and not entry.startswith(("Module_", ".", "_"))
                ):
                    templates.append(file_path)

    return templates


def create_registry(args, project: ProjectConfig, templates: list[str]):
    search_paths = list(args.modules) + project.module_paths
    # Modules are commonly stored next to the templates using them.
    for template in templates:
        folder = os.path.dirname(os.path.abspath(template))
        if folder not in search_paths:
            search_paths.append(folder)
    return ModuleRegistry(search_paths)


def load_templates(args):
    project = load_project(args)
    templates = list_templates(args, project)
    registry = create_registry(args, project, templates)
    config = load_config(args, project)

    for path in templates:
        template = Template.load_file(path, registry.load)
        if not template.valid:
            print(f"Error! Skipping invalid template {os.path.basename(path)}")
            continue
        yield template, copy.deepcopy(config)


def _info_value(value):
    if isinstance(value, Property):
        return value.name
    if isinstance(value, Header):
        return value.title
    if isinstance(value, Program):
        return value.name
    if isinstance(value, (set, tuple)):
        return sorted(value)
    return value


def _format_info(obj: list | dict, depth=0) -> str:
    "Renders nested dicts and lists as an indented outline, lists show their length"
    prefix = "  " * max(depth - 1, 0) + ("- " if depth else "")
    entries = obj.items() if isinstance(obj, dict) else ((None, val) for val in obj)

    lines = []
    for key, value in entries:
        value = _info_value(value)
        line = prefix
        if key is not None:
            line += f"{key} ({len(value)}): " if isinstance(value, list) else f"{key}: "

        if isinstance(value, (list, dict)):
            lines.append(line)
            if value:
                lines.append(_format_info(value, depth + 1))
        else:
            lines.append(line + str(value))

    return "\n".join(lines)


def _property_info(prop: Property, header: Header | None):
    return {
        "Program": prop.program,
        "Label": prop.label,
        "Header": header or "",
        "Implementations": [
            imp.kind
            + (f" -> {linked_property_name(imp)}" if linked_property_name(imp) else "")
            for imp in prop.implementations
        ],
        "Passes": prop.passes,
    }


def info(args):
    for template, _ in load_templates(args):
        headers = template.property_headers
        info = {
            "ID": template.id,
            "Config": template.config_type,
            "Info": template.info,
            "Warning": template.warning,
            "Template Keywords": template.template_keywords,
            "Modules": list(template.modules.keys()),
            "UI Features": len(template.ui_features),
            "Properties": {
                f"{p.type} {p.name}": _property_info(p, headers.get(i))
                for i, p in enumerate(template.properties)
            },
        }
        print(f"#### {template.name} ####")
        print(_format_info(info))


def features(args):
    for template, config in load_templates(args):
        template.apply_keywords(config)
        template.apply_forced_values(config)
        print(f"#### {template.name} ####")
        print("\n".join(template.render_features(config)))


def generate_shaders(args):
    if args.output and not os.path.isdir(args.output):
        os.makedirs(args.output)

    for template, config in load_templates(args):
        print(template.name)
        result = generate(template, config)
        if result.failed:
            print(f"Error! Failed to generate {template.name}")
            continue

        with open(
            os.path.join(args.output, template.name + SHADER_EXTENSION),
            "w",
            encoding="utf-8",
        ) as f:
            f.write(result.text())


def usage(args):
    for template, config in load_templates(args):
        result = generate(template, config)
        print(f"#### {template.name} ####")
        if result.failed:
            print(f"Error! Failed to resolve {template.name}")
            continue

        print(
            _format_info(
                {
                    f"Pass {i}": result.usage.used_in(i)
                    for i in range(len(result.usage))
                }
            )
        )


def main():
    parser = argparse.ArgumentParser(
        prog="glaze",
        description="Shader generator that resolves feature-based templates and reusable code modules",
    )

    commands = {
        "info": info,
        "features": features,
        "generate": generate_shaders,
        "usage": usage,
    }

    # Common arguments.
    group = parser.add_argument_group("common arguments")
    group.add_argument("command", choices=commands.keys(), help="Command to use")
    group.add_argument("inputs", nargs="*", help="List of templates or folders")
    group.add_argument("-o", "--output", type=str, default="", help="Output path")

    # Project arguments.
    group = parser.add_argument_group("project arguments")
    group.add_argument(
        "--project", type=str, default="", help="Path to project.json file"
    )
    group.add_argument(
        "-p",
        "--profile",
        type=str,
        nargs="*",
        default=[],
        help="Profiles to use from the project file",
    )
    group.add_argument(
        "--modules",
        type=str,
        nargs="*",
        default=[],
        help="Additional folders to search for Module_<name>.txt files",
    )

    # Generation arguments.
    group = parser.add_argument_group("generation arguments")
    group.add_argument(
        "-c", "--config", type=str, default="", help="Path to generation config file"
    )
    group.add_argument(
        "-f",
        "--features",
        type=str,
        nargs="*",
        default=[],
        help="Additional features to enable",
    )

    # Execute command.
    args = parser.parse_args()
    current_time = time.perf_counter()

    commands[args.command](args)

    print(f"Completed in {round(time.perf_counter() - current_time, 2)} seconds")
