"""
Exceptions raised by the multi-state engine
"""


class ProfileResolutionError(ValueError):
    """A covariate profile cannot be mapped onto a transition's dummy columns"""

    def __init__(self, message, transition=None, profile=None):
        self.transition = transition
        self.profile = profile
        context = []
        if transition is not None:
            context.append(f"transition {transition}")
        if profile is not None:
            context.append(f"profile {dict(profile)}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class InputShapeMismatch(ValueError):
    """Coefficient and variance inputs disagree on time grid or columns"""

    def __init__(self, message, transition=None):
        self.transition = transition
        if transition is not None:
            message = f"{message} (transition {transition})"
        super().__init__(message)
