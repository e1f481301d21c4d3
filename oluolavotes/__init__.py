"""
oluolavotes client package

Client for the oluolavotes governance contract on Stacks. Core imports are
lazily loaded so the codec can be used without pulling in httpx:

    from oluolavotes.clarity import uint_cv, deserialize
    from oluolavotes.gateway import ContractGateway
    from oluolavotes.governance import ProposalReadModel, ActionSubmitter
"""

__version__ = "1.0.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'ContractGateway':
        from .gateway import ContractGateway
        return ContractGateway
    elif name == 'ProposalReadModel':
        from .governance import ProposalReadModel
        return ProposalReadModel
    elif name == 'ActionSubmitter':
        from .governance import ActionSubmitter
        return ActionSubmitter
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'oluolavotes' has no attribute {name!r}")

__all__ = ['ContractGateway', 'ProposalReadModel', 'ActionSubmitter', 'load_config', '__version__']
