"""
Provisioning — detect the host, install tools, write shell configuration.

Layers, bottom-up:
    data/           tool catalogue, fallback chains, dotfile templates
    detection/      platform, privileges, network
    execution/      subprocess runner, installers, dotfile writer
    orchestration/  the run itself
"""
