"""
Example: Managing prompts with PromptVault

This example demonstrates how to:
1. Create prompts in categories
2. Render templates with parameters
3. Update, list and switch prompt versions
4. Export a category for sharing
"""

import asyncio
import tempfile

from promptvault import ConfigManager, MissingParameterError, PromptManager


async def setup_prompts(manager: PromptManager):
    """Create example prompts."""

    await manager.create_prompt({
        "category": "Greeting",
        "name": "Hello",
        "description": "Greets a user by name",
        "template": "Hi {{name}}!",
        "parameters": ["name"],
        "inputSchema": {
            "type": "object",
            "properties": {"name": {"type": "string"}},
            "required": ["name"],
        },
        "outputSchema": {"type": "string"},
        "tags": ["onboarding"],
    })

    await manager.create_prompt({
        "category": "Writing",
        "name": "summarizer",
        "description": "Summarize a document in a given style",
        "template": """Please summarize the following {{content_type}} in a {{style}} manner.

Content to summarize:
---
{{content}}
---""",
        "parameters": ["content_type", "style", "content"],
        "configuration": {
            "modelName": "gpt-4o-mini",
            "temperature": 0.3,  # Lower for more consistent summaries
            "maxTokens": 1000,
        },
        "tags": ["summarization", "utility"],
    })

    print("✓ Prompts created")


async def example_rendering(manager: PromptManager):
    """Example: Render prompts with parameters."""

    print("\n--- Rendering Example ---")

    print(await manager.format_prompt("Greeting", "Hello", {"name": "Ann"}))

    try:
        await manager.format_prompt("Greeting", "Hello", {})
    except MissingParameterError as e:
        print(f"Expected failure: {e}")


async def example_version_management(manager: PromptManager):
    """Example: Managing prompt versions."""

    print("\n--- Version Management Example ---")

    updated = await manager.update_prompt(
        "Greeting", "Hello", {"template": "Hello {{name}}, welcome!"}
    )
    print(f"Updated to version {updated.version}")
    print(await manager.format_prompt("Greeting", "Hello", {"name": "Ann"}))

    prompt = await manager.get_prompt("Greeting", "Hello")
    print(f"Versions: {await prompt.versions()}")

    diff = await manager.compare_versions("Greeting", "Hello", "1.0.0", "1.0.1")
    print(f"Template changed: {diff['template_changed']}")

    # Roll back
    await manager.version_prompt("switch", "Greeting", "Hello", "1.0.0")
    print(await manager.format_prompt("Greeting", "Hello", {"name": "Ann"}))


async def example_listing(manager: PromptManager):
    """Example: List, search and export."""

    print("\n--- Listing Example ---")

    for summary in await manager.list_prompts():
        print(f"{summary.category}/{summary.name} v{summary.current_version} "
              f"({summary.version_count} versions)")

    results = await manager.search_prompts("summar")
    print(f"Search 'summar': {[s.name for s in results]}")

    exported = await manager.export_json("Greeting")
    print(f"Exported Greeting: {len(exported)} bytes")


async def main():
    with tempfile.TemporaryDirectory() as root:
        manager = PromptManager(config=ConfigManager(root=root))
        await manager.initialize()

        await setup_prompts(manager)
        await example_rendering(manager)
        await example_version_management(manager)
        await example_listing(manager)


if __name__ == "__main__":
    asyncio.run(main())
