# Entry point picked up by :UpdateRemotePlugins; the plugin lives in the installed package.
from spotify_nvim.ui.nvim_plugin import SpotifyPlugin

__all__ = ["SpotifyPlugin"]
