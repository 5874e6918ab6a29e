from .step_10_detect_host import DetectHostStep
from .step_20_track_unstable import TrackUnstableStep
from .step_30_install_editor import InstallEditorStep
from .step_40_install_utilities import InstallUtilitiesStep
from .step_50_install_config_mgmt import InstallConfigMgmtStep
from .step_60_network_mount import NetworkMountStep
from .step_70_user_dotfiles import UserDotfilesStep
from .step_90_finalize import FinalizeStep

__all__ = [
    "DetectHostStep",
    "TrackUnstableStep",
    "InstallEditorStep",
    "InstallUtilitiesStep",
    "InstallConfigMgmtStep",
    "NetworkMountStep",
    "UserDotfilesStep",
    "FinalizeStep",
]
