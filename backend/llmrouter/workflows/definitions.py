# /llmrouter/workflows/definitions.py

"""
Example flow library as pure data (no logic).

Each entry is a ready-to-save flow:
- name: Display name
- description: The natural-language step list fed to the parser
- initial_input: Placeholder text for the first step's content
"""

from typing import Dict, List

ExampleFlow = Dict[str, str]

EXAMPLE_FLOWS: List[ExampleFlow] = [
    {
        "name": "Content Analysis Pipeline",
        "description": "First analyze this text for tone and sentiment, then identify the 3 main themes, then suggest 5 related topics",
        "initial_input": "Enter your content here...",
    },
    {
        "name": "Professional Rewriter",
        "description": "First rewrite this text in a professional tone, then make it more concise without losing meaning, then format it as bullet points",
        "initial_input": "Enter your text here...",
    },
    {
        "name": "Translation Comparison",
        "description": "First translate this to Spanish, then translate the Spanish back to English, then compare the differences between the original and the back-translation",
        "initial_input": "Enter your English text here...",
    },
    {
        "name": "Article to Social Media",
        "description": "First extract the 5 key facts from this article, then create a tweet thread about them, then suggest 5 relevant hashtags",
        "initial_input": "Paste your article here...",
    },
    {
        "name": "Creative Story Builder",
        "description": "First create a character description based on these traits, then write a short scene with this character, then suggest a plot twist",
        "initial_input": "Character traits: brave, curious, clever...",
    },
    {
        "name": "Code Review Flow",
        "description": "First review this code for potential bugs, then suggest performance improvements, then rewrite with best practices",
        "initial_input": "Paste your code here...",
    },
]
