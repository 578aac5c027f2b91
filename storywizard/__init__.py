"""StoryWizard: stories, characters, worlds, chapters and items for writers.

Layers, leaf-first:
  storage     KeyValueStore (JSON file per key) + StoryRepository (per-user keys)
  identity    accounts and the session identity (bcrypt credentials)
  stories     StoryStore: the story collection, active selection, nested CRUD
  characters  character-editor defaults, capped multi-selects, wizard
  gateway     Gemini text/image/chat generation over httpx
  locale      t(key) lookup for the selected locale
  autosave    debounced manuscript writes
  workspace   re-resolves the story store whenever the identity changes
"""

# Re-export the public surface so `import storywizard` is enough for callers.

from .identity import (  # noqa: F401
    DisposableEmail,
    DuplicateAccount,
    IdentityError,
    IdentityStore,
    InvalidCredentials,
)

from .models import (  # noqa: F401
    Appearance,
    Chapter,
    Character,
    ChatMessage,
    Illustration,
    Item,
    Story,
    User,
    World,
)

from .storage import (  # noqa: F401
    KeyValueStore,
    StoryRepository,
)

from .stories import (  # noqa: F401
    EntityNotFound,
    StoryNotFound,
    StoryStore,
)

from .gateway import (  # noqa: F401
    ChatSession,
    GeminiGateway,
    GenerationFailed,
    UnconfiguredGateway,
)

from .workspace import (  # noqa: F401
    NotAuthenticated,
    Workspace,
)
