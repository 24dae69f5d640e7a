"""jsongen codec generator."""

from .bean import BeanDefinition as BeanDefinition
from .bean import Property as Property
from .engine import GenerationOutput as GenerationOutput
from .engine import generate as generate
from .introspector import introspect as introspect
from .options import GeneratorOptions as GeneratorOptions
from .overlay import AnnotationOverlay as AnnotationOverlay
from .overlay import OverlayError as OverlayError
from .problems import Problem as Problem
from .problems import ProblemReporter as ProblemReporter
from .problems import Severity as Severity
from .reflect import Reflector as Reflector
from .reflect import describe as describe
from .registry import GeneratingRegistry as GeneratingRegistry
from .registry import StrategyRegistry as StrategyRegistry
from .singleton import GenerationResult as GenerationResult
from .types import TypeDescriptor as TypeDescriptor
