"""Create a demo account and library for development/testing."""

import logging

from storywizard.community import list_community_stories
from storywizard.identity import InvalidCredentials
from storywizard.workspace import Workspace

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@storywizard.dev"
DEMO_PASSWORD = "demo-password"
DEMO_NAME = "Demo Writer"


def create_demo_data(workspace: Workspace) -> None:
    """Log in (or sign up) the demo user and rebuild their library from scratch."""
    try:
        workspace.identity.login(DEMO_EMAIL, DEMO_PASSWORD)
    except InvalidCredentials:
        workspace.identity.signup(DEMO_EMAIL, DEMO_PASSWORD, DEMO_NAME)

    store = workspace.stories
    for story in store.stories:
        store.delete_story(story.id)

    story = store.add_story("Dragon's Quest")
    story.genre = "Fantasy"
    story.tone = "Adventurous"
    story.outline = "A reluctant squire must return a stolen dragon egg before the mountain wakes."
    store.update_story(story)

    store.add_character(story.id, {
        "name": "Thal",
        "gender": "Male",
        "age": "17",
        "species": "Human",
        "role": "Protagonist",
        "personality_archetypes": ["Anxious", "Loyal"],
        "moral_alignment": "Neutral Good",
        "motivations": ["Redemption"],
        "fears": ["Failure"],
        "appearance": {"build": "Wiry", "hair_color": "Red"},
        "backstory": "A stable boy knighted by accident.",
    })
    store.add_world(story.id, {
        "name": "The Emberreach",
        "description": "Volcanic highlands where dragons nest.",
    })
    store.add_chapter(story.id, {"title": "The Egg", "tension_level": "low"})
    store.add_chapter(story.id, {"title": "The Climb", "tension_level": "medium"})
    store.add_item(story.id, {"name": "Dragon Egg", "description": "Warm, scaled and humming."})

    for community_story in list_community_stories():
        store.clone_story(community_story)

    store.set_active_story_id(story.id)
    logger.info("demo library ready: %d stories", len(store.stories))
