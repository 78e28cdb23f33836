"""
Custom exceptions
"""

class BaseAnalysisError(Exception):
    """Base error for the analysis system"""
    pass

class InputError(BaseAnalysisError):
    """Frame source could not be opened or read"""
    pass

class ModelError(BaseAnalysisError):
    """Pose model error"""
    pass

class DetectorInitError(ModelError):
    """Pose detector could not be initialized (fatal setup error)"""
    pass

class ProcessingError(BaseAnalysisError):
    """Pipeline processing error"""
    pass

class ValidationError(BaseAnalysisError):
    """Invalid operator input"""
    pass

class ConfigurationError(BaseAnalysisError):
    """Invalid configuration"""
    pass

class RecordingError(BaseAnalysisError):
    """Recording session state error"""
    pass

class FileManagerError(BaseAnalysisError):
    """File management error"""
    pass

class ExportError(BaseAnalysisError):
    """Record export error"""
    pass
