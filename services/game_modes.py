import enum


class GameModeClass(enum.Enum):
    """Whether a game mode can be played without a subscription."""
    FREE = 'free'
    PREMIUM = 'premium'


class GameModeCatalog:
    """
    Immutable split of game modes into a free set and a premium set.

    Built once from configuration and handed to the entitlement engine.
    Modes are compared case-sensitively against the configured names
    (e.g. 'QUICK_GAME'). A mode that appears in neither set is premium:
    unknown modes never slip through as free.
    """

    __slots__ = ('_free', '_premium')

    def __init__(self, free_modes, premium_modes):
        free = frozenset(free_modes)
        premium = frozenset(premium_modes)
        overlap = free & premium
        if overlap:
            raise ValueError(f"Game modes cannot be both free and premium: {', '.join(sorted(overlap))}")
        object.__setattr__(self, '_free', free)
        object.__setattr__(self, '_premium', premium)

    def __setattr__(self, name, value):
        raise AttributeError('GameModeCatalog is immutable')

    @classmethod
    def from_config(cls, config):
        """Builds the catalog from FREE_GAME_MODES / PREMIUM_GAME_MODES in a Flask config mapping."""
        return cls(config['FREE_GAME_MODES'], config['PREMIUM_GAME_MODES'])

    @property
    def free_modes(self):
        return self._free

    @property
    def premium_modes(self):
        return self._premium

    def classify(self, game_mode):
        if game_mode in self._free:
            return GameModeClass.FREE
        return GameModeClass.PREMIUM

    def is_free(self, game_mode):
        return self.classify(game_mode) is GameModeClass.FREE

    def requires_subscription(self, game_mode):
        return self.classify(game_mode) is GameModeClass.PREMIUM

    def __repr__(self):
        return f'<GameModeCatalog free={sorted(self._free)} premium={sorted(self._premium)}>'
