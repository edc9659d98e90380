"""Motion analysis module."""

from motion_analytics.analysis.balance import BalanceEstimator, BalanceMetrics
from motion_analytics.analysis.center_of_mass import CenterOfMass, CenterOfMassEstimator
from motion_analytics.analysis.joint_angles import JointAngleAnalyzer, JointAngles
from motion_analytics.analysis.kinematics import MotionCalculator
from motion_analytics.analysis.movement_quality import (
    MovementQuality,
    MovementQualityAnalyzer,
    MovementSummary,
)
from motion_analytics.analysis.performance_tracker import AthleticPerformanceTracker, Sport
from motion_analytics.analysis.pose_comparison import PoseComparison, compare_poses
from motion_analytics.analysis.speed_zones import SpeedZone, SpeedZoneClassifier
from motion_analytics.analysis.symmetry_analyzer import SymmetryAnalyzer, SymmetryScore

__all__ = [
    "AthleticPerformanceTracker",
    "BalanceEstimator",
    "BalanceMetrics",
    "CenterOfMass",
    "CenterOfMassEstimator",
    "JointAngleAnalyzer",
    "JointAngles",
    "MotionCalculator",
    "MovementQuality",
    "MovementQualityAnalyzer",
    "MovementSummary",
    "PoseComparison",
    "Sport",
    "SpeedZone",
    "SpeedZoneClassifier",
    "SymmetryAnalyzer",
    "SymmetryScore",
    "compare_poses",
]
