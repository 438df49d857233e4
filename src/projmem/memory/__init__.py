"""Per-project chat memory — summary, description and saved transcripts.

Layout (relative to the project root, directory name configurable):
    .gptel-chats/
    ├── summary.txt                    # Model-maintained running summary (full overwrites)
    ├── project-description.txt        # Hand-written description, never written here
    └── <generated name>.md | .org     # One file per named chat session

Nothing is created until the first write.
"""
