"""create-next-starter - Next.js starter scaffolding with a cached template overlay."""

__version__ = "0.3.0"
