from pairtimer.utils.preferences import PreferenceStore

__all__ = [
    'PreferenceStore',
]
