"""
Image Proxy

An HTTP proxy that forwards image-generation requests to one configured
provider (OpenAI Images, Replicate predictions or the Hugging Face Inference
API) and returns a uniform list of image URLs / data URIs.
"""

__version__ = "1.0.0"
