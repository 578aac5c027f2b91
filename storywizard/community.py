"""Built-in community stories users can clone into their library.

Catalog stories carry an author and stable ids; cloning one through
StoryStore.clone_story() gives every entity a fresh id and clears the author.
"""

from storywizard.models import Story

COMMUNITY_STORIES: list[dict] = [
    {
        "id": "community-1",
        "title": "The Crimson Cipher",
        "author": "Aria Vance",
        "genre": "Cyberpunk Mystery",
        "tone": "Noir, Tense",
        "outline": "In the rain-slicked metropolis of Neo-Alexandria, a disillusioned "
        "data-detective uncovers a conspiracy that reaches the highest echelons of the "
        "city's AI government when he investigates the disappearance of a famed bio-engineer.",
        "chapters": [
            {"id": "c1-1", "title": "A Ghost in the Machine", "tension_level": "low",
             "content": "Detective Kaelen is hired to find a missing person in the "
             "neon-drenched underbelly of the city."},
            {"id": "c1-2", "title": "Echoes of the Past", "tension_level": "medium",
             "content": "The case leads Kael to an abandoned data haven, where he finds "
             "cryptic clues left behind by the engineer."},
        ],
        "characters": [
            {
                "id": "char-c1-1", "name": 'Kaelen "Kael" Rourke', "gender": "Male",
                "age": "35", "species": "Human", "role": "Protagonist",
                "personality_archetypes": ["Cynical", "Reserved", "Loyal"],
                "moral_alignment": "Chaotic Good",
                "motivations": ["Justice"], "fears": ["Failure"],
                "appearance": {"height": "6'1\"", "build": "Lean", "hair_color": "Black",
                               "eye_color": "Grey",
                               "distinctive_features": "A cybernetic left eye that glows faintly."},
                "backstory": "A former corporate enforcer who left the life after a job went "
                "wrong. Now he takes cases the city police won't touch.",
                "relationships": "Haunted by the memory of his former partner.",
                "dialogue_style": "Short, sarcastic, and to the point.",
            },
        ],
        "worlds": [
            {"id": "world-c1-1", "name": "Neo-Alexandria",
             "description": "A sprawling, vertical city governed by a council of AIs.",
             "geography": "Built in the crater of an old asteroid impact, the city stretches "
             "from the toxic Sump to the pristine Spire.",
             "culture": "A society obsessed with data, body modification, and virtual realities."},
        ],
        "items": [],
        "illustrations": [],
    },
    {
        "id": "community-2",
        "title": "Whispers of the Sunstone",
        "author": "Elara Meadowlight",
        "genre": "High Fantasy",
        "tone": "Epic, Hopeful",
        "outline": "A young village healer discovers she is the last in a line of ancient "
        "guardians tasked with protecting the Sunstone from a creeping shadow.",
        "chapters": [
            {"id": "c2-1", "title": "An Unwanted Inheritance", "tension_level": "low",
             "content": "Lyra's quiet life is shattered when a mysterious stranger reveals "
             "her true lineage."},
            {"id": "c2-2", "title": "The Shadow's Grasp", "tension_level": "high",
             "content": "The village is attacked by shadow creatures, forcing Lyra to use "
             "her nascent powers to defend her home."},
        ],
        "characters": [
            {
                "id": "char-c2-1", "name": "Lyra", "gender": "Female", "age": "19",
                "species": "Human", "role": "Protagonist",
                "personality_archetypes": ["Brave", "Idealistic", "Anxious"],
                "moral_alignment": "Lawful Good",
                "motivations": ["Survival", "Redemption"], "fears": ["Failure", "The Unknown"],
                "appearance": {"height": "5'6\"", "build": "Slender", "hair_color": "Golden Blonde",
                               "eye_color": "Green",
                               "distinctive_features": "A faint birthmark on her wrist shaped like a sunburst."},
                "backstory": "An orphan raised by the village elder, Lyra always felt like an "
                "outsider until she discovered her true purpose.",
                "relationships": "Views the village elder as a grandmother.",
                "dialogue_style": "Warm and empathetic, but firm when needed.",
            },
        ],
        "worlds": [
            {"id": "world-c2-1", "name": "Aethelgard",
             "description": "A vibrant world of lush forests and ancient mountains, sustained "
             "by the light of the Sunstone.",
             "geography": "The story begins in the secluded village of Oakhaven, in the heart "
             "of the Elderwood.",
             "culture": "A peaceful, nature-worshipping society that has forgotten the evils "
             "of the past."},
        ],
        "items": [
            {"id": "item-c2-1", "name": "The Sunstone Pendant",
             "description": "A smooth, warm stone that emits a soft golden light."},
        ],
        "illustrations": [],
    },
]


def list_community_stories() -> list[Story]:
    return [Story.model_validate(s) for s in COMMUNITY_STORIES]


def get_community_story(story_id: str) -> Story | None:
    for story in COMMUNITY_STORIES:
        if story["id"] == story_id:
            return Story.model_validate(story)
    return None
