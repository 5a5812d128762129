"""quickstart — a three-step "new project" wizard driven by a scripted user.

    uv run python examples/quickstart.py
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from kungfu import Error, Ok

from stepflow.flow import MultiStepInput, StepOutcome
from stepflow.memory import MemorySurfaces
from stepflow.surface import ChoiceItem, ChoiceSurface, TextSurface

LANGUAGES = [ChoiceItem("Python"), ChoiceItem("Rust"), ChoiceItem("Go")]
LICENSES = [ChoiceItem("MIT"), ChoiceItem("Apache-2.0", description="with patent grant")]
TOTAL = 3


@dataclass
class Project:
    language: str = ""
    name: str = ""
    license: str = ""


async def validate_name(name: str) -> str | None:
    await asyncio.sleep(0.01)  # pretend to ask a registry
    if not name:
        return "Name is required"
    if not name.isidentifier():
        return "Use letters, digits and underscores"
    return None


def wizard(project: Project):
    async def pick_language(flow: MultiStepInput) -> StepOutcome:
        match await flow.show_choice(
            title="New project", step=1, total_steps=TOTAL,
            items=LANGUAGES, placeholder="Pick a language",
        ):
            case Ok(item):
                project.language = item.label
                return enter_name
            case Error(signal):
                return signal

    async def enter_name(flow: MultiStepInput) -> StepOutcome:
        match await flow.show_text(
            title="New project", step=2, total_steps=TOTAL,
            value=project.name, prompt="Project name", validate=validate_name,
        ):
            case Ok(name):
                project.name = name
                return pick_license
            case Error(signal):
                return signal

    async def pick_license(flow: MultiStepInput) -> StepOutcome:
        match await flow.show_choice(
            title="New project", step=3, total_steps=TOTAL,
            items=LICENSES, placeholder="Pick a license",
        ):
            case Ok(item):
                project.license = item.label
                return None
            case Error(signal):
                return signal

    return pick_language


async def scripted_user(surfaces: MemorySurfaces) -> None:
    language = await surfaces.next_shown()
    assert isinstance(language, ChoiceSurface)
    language.select(language.items[0])

    name = await surfaces.next_shown()
    assert isinstance(name, TextSurface)
    name.change_value("my project")
    await asyncio.sleep(0.05)
    print(f"  validation: {name.validation_message}")
    name.change_value("my_project")
    name.accept()

    license_ = await surfaces.next_shown()
    assert isinstance(license_, ChoiceSurface)
    license_.select(license_.items[1])


async def main() -> None:
    project = Project()
    surfaces = MemorySurfaces()
    run = asyncio.create_task(MultiStepInput.run(wizard(project), surfaces))
    await scripted_user(surfaces)
    match await run:
        case Ok(_):
            print(f"Created {project}")
        case Error(signal):
            print(f"Wizard ended with {signal.name}")


if __name__ == "__main__":
    asyncio.run(main())
