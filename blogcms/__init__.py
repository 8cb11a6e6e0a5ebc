# blogcms: multi-language blog posts with a transactional slug index
