"""
Pipeline module for memory-augmented chat.

Provides the system instruction builder (persona + memory in) and the
summarizer (conversation in, memory summary out). Import the submodules
directly: the summarizer depends on the llm package, which itself uses
the instruction builder.
"""
