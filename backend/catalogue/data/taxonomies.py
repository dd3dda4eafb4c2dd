"""
Canonical taxonomy definitions.

Categories:
- genre: Top-level genres
- subgenre: Narrower genres; each names its parent genre
- theme: Thematic elements
- trope: Recurring story patterns
"""

TAXONOMIES = [
    # === GENRES ===
    {"name": "Fiction", "type": "genre", "description": "Made-up stories and narratives"},
    {
        "name": "Science Fiction",
        "type": "genre",
        "description": "Stories with futuristic technology or science themes",
    },
    {"name": "Fantasy", "type": "genre", "description": "Stories with magical or supernatural elements"},
    {"name": "Romance", "type": "genre", "description": "Stories centered on romantic relationships"},
    {"name": "Mystery", "type": "genre", "description": "Stories involving puzzles or crimes to be solved"},
    {"name": "Thriller", "type": "genre", "description": "Suspenseful, exciting stories"},
    # === SUBGENRES ===
    {"name": "Space Opera", "type": "subgenre", "parent": "Science Fiction", "description": "Grand space adventures"},
    {"name": "Cyberpunk", "type": "subgenre", "parent": "Science Fiction", "description": "High tech, low life"},
    {
        "name": "Hard Science Fiction",
        "type": "subgenre",
        "parent": "Science Fiction",
        "description": "Science fiction with emphasis on scientific accuracy",
    },
    {"name": "Epic Fantasy", "type": "subgenre", "parent": "Fantasy", "description": "Fantasy with grand, sweeping scope"},
    {"name": "Urban Fantasy", "type": "subgenre", "parent": "Fantasy", "description": "Fantasy in modern urban settings"},
    {
        "name": "Historical Romance",
        "type": "subgenre",
        "parent": "Romance",
        "description": "Romance set in historical periods",
    },
    {
        "name": "Contemporary Romance",
        "type": "subgenre",
        "parent": "Romance",
        "description": "Romance set in the present day",
    },
    {
        "name": "Paranormal Romance",
        "type": "subgenre",
        "parent": "Romance",
        "description": "Romance with supernatural elements",
    },
    {"name": "Cozy Mystery", "type": "subgenre", "parent": "Mystery", "description": "Gentle, often humorous mysteries"},
    {
        "name": "Police Procedural",
        "type": "subgenre",
        "parent": "Mystery",
        "description": "Mysteries focusing on police work",
    },
    # === THEMES ===
    {"name": "Coming of Age", "type": "theme", "description": "Growing up and maturing"},
    {"name": "Redemption", "type": "theme", "description": "Character seeking forgiveness"},
    {"name": "Justice", "type": "theme", "description": "Right vs. wrong, fairness"},
    {"name": "Mortality", "type": "theme", "description": "Dealing with death and impermanence"},
    {"name": "Love", "type": "theme", "description": "Romantic or platonic emotional attachment"},
    {"name": "Identity", "type": "theme", "description": "Understanding oneself and one's place"},
    {"name": "Power", "type": "theme", "description": "Acquisition, use, or consequences of power"},
    {"name": "Family", "type": "theme", "description": "Blood relationships and chosen family"},
    {"name": "Betrayal", "type": "theme", "description": "Breaking trust or loyalty"},
    {"name": "Freedom", "type": "theme", "description": "Liberation from constraints"},
    {"name": "Death", "type": "theme", "description": "End of life and its implications"},
    # === TROPES ===
    {"name": "The Chosen One", "type": "trope", "description": "A character destined for greatness"},
    {"name": "Fish Out of Water", "type": "trope", "description": "Character placed in unfamiliar surroundings"},
    {"name": "Enemies to Lovers", "type": "trope", "description": "Adversaries becoming romantic partners"},
    {"name": "Hidden Heir", "type": "trope", "description": "Character discovers royal/important lineage"},
    {"name": "Reluctant Hero", "type": "trope", "description": "Character forced into heroic role"},
    {"name": "Love Triangle", "type": "trope", "description": "Three characters in romantic entanglement"},
    {"name": "Secret Identity", "type": "trope", "description": "Character conceals true self"},
    {"name": "Forbidden Love", "type": "trope", "description": "Romance between incompatible partners"},
    {"name": "Tragic Hero", "type": "trope", "description": "Noble character with fatal flaw"},
    {"name": "The Mentor", "type": "trope", "description": "Wise guide who helps protagonist"},
    {"name": "Found Family", "type": "trope", "description": "Unrelated characters forming familial bonds"},
    {"name": "Unreliable Narrator", "type": "trope", "description": "Storyteller whose credibility is compromised"},
]
